# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.

"""Unit tests for verification history stores."""

import pytest

from verifynews_core.schema.verdict import SelectedArticle, VerificationRecord
from verifynews_core.verification.history import InMemoryHistoryStore, JsonlHistoryStore
from tests.fixtures.verification_fixtures import make_result


def _record(slug: str, user_id: str = "user-1") -> VerificationRecord:
    return VerificationRecord(
        slug=slug,
        title="Moon Cheese Claim",
        query="The moon is made of cheese",
        content="The moon is made of cheese",
        result=make_result(),
        user_id=user_id,
        article=SelectedArticle(title="Daily Cheese", url="https://cheese.example.com/moon"),
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_jsonl_store_appends_and_reloads(tmp_path):
    store = JsonlHistoryStore(tmp_path / "history")
    await store.save_history(_record("abc"))
    await store.save_to_collection(_record("abc"))
    await store.save_to_collection(_record("def", user_id="user-2"))

    history = store.load(store.history_path)
    collection = store.load(store.collection_path)

    assert [r.slug for r in history] == ["abc"]
    assert [r.slug for r in collection] == ["abc", "def"]
    assert collection[0].result.confidence == 92
    assert collection[0].article.url == "https://cheese.example.com/moon"


@pytest.mark.unit
def test_jsonl_load_skips_malformed_lines(tmp_path):
    store = JsonlHistoryStore(tmp_path)
    good = _record("ok").model_dump_json()
    store.collection_path.write_text(f"{good}\n{{not json\n\n", encoding="utf-8")

    assert [r.slug for r in store.load(store.collection_path)] == ["ok"]
    assert store.load(tmp_path / "missing.jsonl") == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_in_memory_lookup_helpers():
    store = InMemoryHistoryStore()
    await store.save_history(_record("a", "u1"))
    await store.save_history(_record("b", "u2"))
    await store.save_to_collection(_record("a", "u1"))

    assert [r.slug for r in store.history_for("u2")] == ["b"]
    assert store.find_by_slug("a").user_id == "u1"
    assert store.find_by_slug("zzz") is None
