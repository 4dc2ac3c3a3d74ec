# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.

"""Contract tests for verdict and claim models."""

import pytest

from verifynews_core.schema.verdict import (
    Claim,
    MediaInput,
    MediaKind,
    ProviderResult,
    Veracity,
    media_kind_from_mime,
)
from verifynews_core.tools.url_utils import canonical_url_for_dedupe, is_valid_public_http_url, normalize_sources


@pytest.mark.unit
def test_source_normalization_is_idempotent():
    raw = ["https://www.bbc.com/news/1", {"title": "Reuters", "link": "https://reuters.com/a"}, "not a url"]
    once = normalize_sources(raw)
    assert once == [
        {"name": "www.bbc.com", "url": "https://www.bbc.com/news/1"},
        {"name": "Reuters", "url": "https://reuters.com/a"},
    ]
    assert normalize_sources(once) == once


@pytest.mark.unit
def test_sources_accept_single_item_and_garbage():
    assert normalize_sources("https://apnews.com/x") == [{"name": "apnews.com", "url": "https://apnews.com/x"}]
    assert normalize_sources({"name": "AP", "url": "ftp://apnews.com/x"}) == []
    assert normalize_sources(42) == []
    assert normalize_sources(None) == []


@pytest.mark.unit
def test_provider_result_defaults_are_renderable():
    result = ProviderResult.model_validate({"veracity": "TRUE"})
    assert result.veracity == Veracity.TRUE
    assert result.confidence == 0
    assert result.sources == []
    assert result.to_dict() == {"veracity": "true", "confidence": 0, "explanation": "", "sources": []}


@pytest.mark.unit
def test_with_leading_source_returns_copy():
    result = ProviderResult.model_validate({
        "veracity": "false",
        "sources": [{"name": "NASA", "url": "https://nasa.gov/moon"}],
    })

    injected = result.with_leading_source("Daily Cheese", "https://cheese.example.com/moon")
    assert [s.url for s in injected.sources] == ["https://cheese.example.com/moon", "https://nasa.gov/moon"]
    assert len(result.sources) == 1

    again = injected.with_leading_source("Daily Cheese", "https://cheese.example.com/moon")
    assert len(again.sources) == 2


def test_media_kind_from_mime():
    assert media_kind_from_mime("image/jpeg") == MediaKind.IMAGE
    assert media_kind_from_mime("audio/mpeg") == MediaKind.AUDIO
    assert media_kind_from_mime("video/mp4") == MediaKind.VIDEO
    assert media_kind_from_mime("application/pdf") == MediaKind.TEXT


def test_media_input_strips_data_url_prefix():
    media = MediaInput(data="data:image/png;base64,iVBORw0KGgo=", mime_type="image/png")
    assert media.data == "iVBORw0KGgo="
    assert media.kind == MediaKind.IMAGE
    assert MediaInput.from_bytes(b"abc", "text/plain").data == "YWJj"


def test_claim_content_and_emptiness():
    assert Claim(text="  moon  ").content() == "moon"
    assert Claim(url="https://example.com/story").content() == "https://example.com/story"
    assert Claim(text="   ").is_empty()
    assert not Claim(media=MediaInput(data="YWJj", mime_type="image/png")).is_empty()


def test_url_helpers():
    assert is_valid_public_http_url("https://example.com/a")
    assert not is_valid_public_http_url("http://localhost:8000/")
    assert not is_valid_public_http_url("javascript:alert(1)")
    assert canonical_url_for_dedupe("https://www.example.com/a/?utm=1#x") == "example.com/a"
