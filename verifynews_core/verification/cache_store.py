# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Namespaced TTL cache over a pluggable key-value backend.

Entries are JSON text `{"data", "created_at", "expires_at"}` (milliseconds).
Expired entries are evicted lazily on read. When a namespace grows past
`max_size`, the entries with the oldest `created_at` go first; reads do not
refresh an entry, so this is creation order, not LRU.

Backend failures of any kind are logged and degrade to "no cache"; nothing here raises
to the caller.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol

import diskcache

from verifynews_core.constants import CACHE_KIND_GENERAL
from verifynews_core.runtime_config import CacheNamespaceConfig, EngineCacheConfig
from verifynews_core.tools.cache_utils import ensure_diskcache, make_cache_key
from verifynews_core.utils.runtime import now_ms
from verifynews_core.utils.trace import Trace

logger = logging.getLogger(__name__)

_DECODE_ERRORS = (ValueError, TypeError, KeyError)


class CacheBackend(Protocol):
    def get_raw(self, key: str) -> Optional[str]: ...

    def set_raw(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> Iterable[str]: ...

    def clear(self) -> None: ...


class MemoryCacheBackend:
    """Process-local dict of JSON strings."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_raw(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterable[str]:
        return list(self._data.keys())

    def clear(self) -> None:
        self._data.clear()


class DiskCacheBackend:
    """diskcache-backed store; survives restarts and is shared across processes."""

    def __init__(self, path: Path | str):
        self.cache: diskcache.Cache = ensure_diskcache(Path(path))

    def get_raw(self, key: str) -> Optional[str]:
        value = self.cache.get(key)
        return value if isinstance(value, str) or value is None else str(value)

    def set_raw(self, key: str, value: str) -> None:
        self.cache.set(key, value)

    def delete(self, key: str) -> None:
        self.cache.delete(key)

    def keys(self) -> Iterable[str]:
        return [k for k in self.cache.iterkeys() if isinstance(k, str)]

    def clear(self) -> None:
        self.cache.clear()

    def close(self) -> None:
        self.cache.close()


@dataclass(frozen=True)
class CacheStats:
    entry_count: int
    cache_size: int
    storage_used: str

    def to_dict(self) -> dict[str, Any]:
        return {"entry_count": self.entry_count, "cache_size": self.cache_size, "storage_used": self.storage_used}


class CacheStore:
    def __init__(
        self,
        config: CacheNamespaceConfig,
        backend: CacheBackend | None = None,
        *,
        clock: Callable[[], int] = now_ms,
    ):
        self.config = config
        self.backend: CacheBackend = backend if backend is not None else MemoryCacheBackend()
        self._clock = clock

    @property
    def namespace(self) -> str:
        return self.config.namespace

    def make_key(self, content: str, kind: str = CACHE_KIND_GENERAL) -> str:
        return make_cache_key(self.config.namespace, kind, content)

    def _own_keys(self) -> list[str]:
        prefix = f"{self.config.namespace}:"
        return [k for k in self.backend.keys() if k.startswith(prefix)]

    def get(self, content: str, kind: str = CACHE_KIND_GENERAL) -> Any | None:
        key = self.make_key(content, kind)
        try:
            stored = self.backend.get_raw(key)
            if stored is None:
                Trace.event("cache.miss", {"namespace": self.namespace, "kind": kind})
                return None

            entry = json.loads(stored)
            if self._clock() > int(entry["expires_at"]):
                self.backend.delete(key)
                Trace.event("cache.miss", {"namespace": self.namespace, "kind": kind, "expired": True})
                return None

            Trace.event("cache.hit", {"namespace": self.namespace, "kind": kind})
            return entry["data"]
        except _DECODE_ERRORS as e:
            logger.warning("[Cache] Corrupted entry %s in %s: %s", key, self.namespace, e)
            self._safe_delete(key)
            return None
        except Exception as e:
            logger.warning("[Cache] Retrieval error in %s: %s", self.namespace, e)
            return None

    def set(self, content: str, data: Any, kind: str = CACHE_KIND_GENERAL) -> None:
        key = self.make_key(content, kind)
        now = self._clock()
        try:
            payload = json.dumps({"data": data, "created_at": now, "expires_at": now + self.config.ttl_ms})
        except (TypeError, ValueError) as e:
            logger.warning("[Cache] Value for %s is not serializable: %s", self.namespace, e)
            return

        try:
            self.backend.set_raw(key, payload)
        except Exception as e:
            logger.warning("[Cache] Storage error in %s: %s", self.namespace, e)
            return
        self._enforce_max_size()

    def remove(self, content: str, kind: str = CACHE_KIND_GENERAL) -> None:
        self._safe_delete(self.make_key(content, kind))

    def clear(self) -> None:
        """Drop every entry of this namespace; other namespaces on the same backend survive."""
        try:
            for key in self._own_keys():
                self.backend.delete(key)
        except Exception as e:
            logger.warning("[Cache] Clear error in %s: %s", self.namespace, e)

    def get_stats(self) -> CacheStats:
        try:
            keys = self._own_keys()
            total = 0
            for key in keys:
                item = self.backend.get_raw(key)
                if item:
                    total += len(item)
        except Exception as e:
            logger.warning("[Cache] Stats error in %s: %s", self.namespace, e)
            return CacheStats(entry_count=0, cache_size=0, storage_used="0 KB")
        return CacheStats(entry_count=len(keys), cache_size=total, storage_used=f"{total / 1024:.2f} KB")

    def _safe_delete(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except Exception as e:
            logger.warning("[Cache] Removal error in %s: %s", self.namespace, e)

    def _enforce_max_size(self) -> None:
        try:
            keys = self._own_keys()
            excess = len(keys) - self.config.max_size
            if excess <= 0:
                return

            aged: list[tuple[int, str]] = []
            for key in keys:
                stored = self.backend.get_raw(key)
                if stored is None:
                    continue
                try:
                    created = int(json.loads(stored)["created_at"])
                except _DECODE_ERRORS:
                    # Unreadable entries are evicted first.
                    created = -1
                aged.append((created, key))

            # Stable on ties so same-millisecond writes keep insertion order.
            aged.sort(key=lambda item: item[0])
            for _, key in aged[:excess]:
                self.backend.delete(key)
            logger.debug("[Cache] Evicted %d oldest entries from %s", min(excess, len(aged)), self.namespace)
        except Exception as e:
            logger.warning("[Cache] Max size enforcement error in %s: %s", self.namespace, e)


@dataclass
class CacheRegistry:
    """The three cache namespaces a host owns for its lifetime."""
    text: CacheStore
    media: CacheStore
    search: CacheStore

    @classmethod
    def from_config(
        cls,
        config: EngineCacheConfig,
        *,
        cache_dir: Path | str | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> "CacheRegistry":
        # One backend for all namespaces; keys are prefixed per namespace.
        backend: CacheBackend = DiskCacheBackend(cache_dir) if cache_dir else MemoryCacheBackend()
        return cls(
            text=CacheStore(config.text, backend, clock=clock),
            media=CacheStore(config.media, backend, clock=clock),
            search=CacheStore(config.search, backend, clock=clock),
        )

    def items(self) -> list[tuple[str, CacheStore]]:
        return [("text", self.text), ("media", self.media), ("search", self.search)]
