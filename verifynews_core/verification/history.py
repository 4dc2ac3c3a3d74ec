# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""Storage for finished verifications: per-user history and the public collection."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol

from verifynews_core.schema.verdict import VerificationRecord

logger = logging.getLogger(__name__)


class HistoryStore(Protocol):
    async def save_history(self, record: VerificationRecord) -> None: ...

    async def save_to_collection(self, record: VerificationRecord) -> None: ...


class InMemoryHistoryStore:
    def __init__(self) -> None:
        self.history: list[VerificationRecord] = []
        self.collection: list[VerificationRecord] = []

    async def save_history(self, record: VerificationRecord) -> None:
        self.history.append(record)

    async def save_to_collection(self, record: VerificationRecord) -> None:
        self.collection.append(record)

    def history_for(self, user_id: str) -> list[VerificationRecord]:
        return [r for r in self.history if r.user_id == user_id]

    def find_by_slug(self, slug: str) -> VerificationRecord | None:
        for r in reversed(self.collection):
            if r.slug == slug:
                return r
        return None


class JsonlHistoryStore:
    """
    Append-only JSON lines under one directory: `history.jsonl` and `collection.jsonl`.

    File writes run in a worker thread so the event loop never blocks on disk.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self._lock = asyncio.Lock()

    @property
    def history_path(self) -> Path:
        return self.root / "history.jsonl"

    @property
    def collection_path(self) -> Path:
        return self.root / "collection.jsonl"

    def _append(self, path: Path, record: VerificationRecord) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        with path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def save_history(self, record: VerificationRecord) -> None:
        async with self._lock:
            await asyncio.to_thread(self._append, self.history_path, record)

    async def save_to_collection(self, record: VerificationRecord) -> None:
        async with self._lock:
            await asyncio.to_thread(self._append, self.collection_path, record)

    def load(self, path: Path) -> list[VerificationRecord]:
        if not path.exists():
            return []
        out: list[VerificationRecord] = []
        with path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    out.append(VerificationRecord.model_validate_json(line))
                except ValueError as e:
                    logger.warning("[History] Skipping malformed line %d in %s: %s", lineno, path, e)
        return out
