# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
In-flight request deduplication.

Concurrent callers with the same key share one task. The entry leaves the
registry as soon as the task settles, so a later call starts fresh work.
A caller that is cancelled stops waiting; the shared task keeps running for
everyone else.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from verifynews_core.utils.trace import Trace

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestDeduplicator:
    def __init__(self, name: str = "default"):
        self.name = name
        self._inflight: dict[str, asyncio.Task[Any]] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    def is_pending(self, key: str) -> bool:
        return key in self._inflight

    async def dedupe(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._settle(k, t))
        else:
            logger.debug("[Dedup] %s joined in-flight request", self.name)
            Trace.event("dedup.joined", {"registry": self.name, "in_flight": len(self._inflight)})

        return await asyncio.shield(task)

    def _settle(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            # Awaiters have their own reference; this only marks it retrieved
            # for the case where every awaiter was cancelled.
            logger.debug("[Dedup] %s request failed: %s", self.name, task.exception())
