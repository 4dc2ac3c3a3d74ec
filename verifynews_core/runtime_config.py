# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Any

from verifynews_core.constants import (
    AUTH_RATE_LIMIT_MESSAGE,
    DEFAULT_PROVIDER_ORDER,
    MEDIA_CACHE_NAMESPACE,
    SEARCH_CACHE_NAMESPACE,
    SEARCH_RATE_LIMIT_MESSAGE,
    TEXT_CACHE_NAMESPACE,
    VERIFICATION_RATE_LIMIT_MESSAGE,
)

_HOUR_MS = 60 * 60 * 1000
_DAY_MS = 24 * _HOUR_MS


def _parse_bool(raw: Any, *, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if not s:
        return default
    if s in ("1", "true", "yes", "y", "on"):
        return True
    if s in ("0", "false", "no", "n", "off"):
        return False
    return default


def _parse_int(raw: Any, *, default: int, min_v: int, max_v: int) -> int:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, int):
            v = raw
        else:
            v = int(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    return max(min_v, min(max_v, v))


def _parse_float(raw: Any, *, default: float, min_v: float, max_v: float) -> float:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, (int, float)):
            v = float(raw)
        else:
            v = float(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    return max(min_v, min(max_v, v))


def _parse_csv(raw: str | None) -> list[str]:
    s = (raw or "").strip()
    if not s:
        return []
    out: list[str] = []
    for part in re.split(r"[,\n]", s):
        p = part.strip().lower()
        if p and p not in out:
            out.append(p)
    return out


@dataclass(frozen=True)
class CacheNamespaceConfig:
    """Policy of one cache partition: key prefix, entry lifetime and entry cap."""
    namespace: str
    ttl_ms: int
    max_size: int


@dataclass(frozen=True)
class EngineCacheConfig:
    text: CacheNamespaceConfig = field(
        default_factory=lambda: CacheNamespaceConfig(TEXT_CACHE_NAMESPACE, 24 * _HOUR_MS, 100)
    )
    media: CacheNamespaceConfig = field(
        default_factory=lambda: CacheNamespaceConfig(MEDIA_CACHE_NAMESPACE, 7 * _DAY_MS, 50)
    )
    search: CacheNamespaceConfig = field(
        default_factory=lambda: CacheNamespaceConfig(SEARCH_CACHE_NAMESPACE, 6 * _HOUR_MS, 50)
    )


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_ms: int
    message: str | None = None


@dataclass(frozen=True)
class EngineRateLimitConfig:
    verification: RateLimitConfig = field(
        default_factory=lambda: RateLimitConfig(10, 60_000, VERIFICATION_RATE_LIMIT_MESSAGE)
    )
    search: RateLimitConfig = field(
        default_factory=lambda: RateLimitConfig(30, 60_000, SEARCH_RATE_LIMIT_MESSAGE)
    )
    auth: RateLimitConfig = field(
        default_factory=lambda: RateLimitConfig(5, 5 * 60_000, AUTH_RATE_LIMIT_MESSAGE)
    )


@dataclass(frozen=True)
class RetrySettings:
    max_retries: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 10_000
    backoff_multiplier: float = 2.0
    jitter_factor: float = 0.1


@dataclass(frozen=True)
class EngineProviderConfig:
    timeout_sec: float = 30.0
    order: tuple[str, ...] = DEFAULT_PROVIDER_ORDER
    # Ranking is skipped for short result lists; total failure keeps this many.
    rank_min_results: int = 3
    rank_fallback_limit: int = 10


@dataclass(frozen=True)
class EngineFeatureFlags:
    # Trace is a local-only debug feature; it is enabled by default and can be disabled via env.
    trace_enabled: bool = True
    persist_history: bool = True


@dataclass(frozen=True)
class EngineRuntimeConfig:
    cache: EngineCacheConfig = field(default_factory=EngineCacheConfig)
    rate_limits: EngineRateLimitConfig = field(default_factory=EngineRateLimitConfig)
    retry: RetrySettings = field(default_factory=RetrySettings)
    providers: EngineProviderConfig = field(default_factory=EngineProviderConfig)
    features: EngineFeatureFlags = field(default_factory=EngineFeatureFlags)

    @staticmethod
    def load_from_env() -> "EngineRuntimeConfig":
        cache = EngineCacheConfig(
            text=CacheNamespaceConfig(
                TEXT_CACHE_NAMESPACE,
                ttl_ms=_parse_int(os.getenv("VERIFYNEWS_TEXT_CACHE_TTL_MS"), default=24 * _HOUR_MS, min_v=1000, max_v=30 * _DAY_MS),
                max_size=_parse_int(os.getenv("VERIFYNEWS_TEXT_CACHE_MAX_SIZE"), default=100, min_v=1, max_v=10_000),
            ),
            media=CacheNamespaceConfig(
                MEDIA_CACHE_NAMESPACE,
                ttl_ms=_parse_int(os.getenv("VERIFYNEWS_MEDIA_CACHE_TTL_MS"), default=7 * _DAY_MS, min_v=1000, max_v=30 * _DAY_MS),
                max_size=_parse_int(os.getenv("VERIFYNEWS_MEDIA_CACHE_MAX_SIZE"), default=50, min_v=1, max_v=10_000),
            ),
            search=CacheNamespaceConfig(
                SEARCH_CACHE_NAMESPACE,
                ttl_ms=_parse_int(os.getenv("VERIFYNEWS_SEARCH_CACHE_TTL_MS"), default=6 * _HOUR_MS, min_v=1000, max_v=30 * _DAY_MS),
                max_size=_parse_int(os.getenv("VERIFYNEWS_SEARCH_CACHE_MAX_SIZE"), default=50, min_v=1, max_v=10_000),
            ),
        )

        rate_limits = EngineRateLimitConfig(
            verification=RateLimitConfig(
                max_requests=_parse_int(os.getenv("VERIFYNEWS_VERIFY_RATE_MAX"), default=10, min_v=1, max_v=1000),
                window_ms=_parse_int(os.getenv("VERIFYNEWS_VERIFY_RATE_WINDOW_MS"), default=60_000, min_v=1000, max_v=_DAY_MS),
                message=VERIFICATION_RATE_LIMIT_MESSAGE,
            ),
            search=RateLimitConfig(
                max_requests=_parse_int(os.getenv("VERIFYNEWS_SEARCH_RATE_MAX"), default=30, min_v=1, max_v=1000),
                window_ms=_parse_int(os.getenv("VERIFYNEWS_SEARCH_RATE_WINDOW_MS"), default=60_000, min_v=1000, max_v=_DAY_MS),
                message=SEARCH_RATE_LIMIT_MESSAGE,
            ),
            auth=RateLimitConfig(
                max_requests=_parse_int(os.getenv("VERIFYNEWS_AUTH_RATE_MAX"), default=5, min_v=1, max_v=1000),
                window_ms=_parse_int(os.getenv("VERIFYNEWS_AUTH_RATE_WINDOW_MS"), default=5 * 60_000, min_v=1000, max_v=_DAY_MS),
                message=AUTH_RATE_LIMIT_MESSAGE,
            ),
        )

        retry = RetrySettings(
            max_retries=_parse_int(os.getenv("VERIFYNEWS_RETRY_MAX"), default=3, min_v=0, max_v=10),
            initial_delay_ms=_parse_int(os.getenv("VERIFYNEWS_RETRY_INITIAL_DELAY_MS"), default=1000, min_v=0, max_v=60_000),
            max_delay_ms=_parse_int(os.getenv("VERIFYNEWS_RETRY_MAX_DELAY_MS"), default=10_000, min_v=0, max_v=300_000),
            backoff_multiplier=_parse_float(os.getenv("VERIFYNEWS_RETRY_BACKOFF"), default=2.0, min_v=1.0, max_v=10.0),
            jitter_factor=_parse_float(os.getenv("VERIFYNEWS_RETRY_JITTER"), default=0.1, min_v=0.0, max_v=1.0),
        )

        order = tuple(_parse_csv(os.getenv("VERIFYNEWS_PROVIDER_ORDER"))) or DEFAULT_PROVIDER_ORDER
        providers = EngineProviderConfig(
            timeout_sec=_parse_float(os.getenv("VERIFYNEWS_PROVIDER_TIMEOUT"), default=30.0, min_v=1.0, max_v=300.0),
            order=order,
            rank_min_results=_parse_int(os.getenv("VERIFYNEWS_RANK_MIN_RESULTS"), default=3, min_v=0, max_v=50),
            rank_fallback_limit=_parse_int(os.getenv("VERIFYNEWS_RANK_FALLBACK_LIMIT"), default=10, min_v=1, max_v=100),
        )

        features = EngineFeatureFlags(
            trace_enabled=not _parse_bool(os.getenv("VERIFYNEWS_TRACE_DISABLE"), default=False),
            persist_history=_parse_bool(os.getenv("VERIFYNEWS_PERSIST_HISTORY"), default=True),
        )

        return EngineRuntimeConfig(
            cache=cache,
            rate_limits=rate_limits,
            retry=retry,
            providers=providers,
            features=features,
        )

    def to_safe_log_dict(self) -> dict[str, Any]:
        def _ns(c: CacheNamespaceConfig) -> dict[str, Any]:
            return {"namespace": c.namespace, "ttl_ms": int(c.ttl_ms), "max_size": int(c.max_size)}

        def _rl(c: RateLimitConfig) -> dict[str, Any]:
            return {"max_requests": int(c.max_requests), "window_ms": int(c.window_ms)}

        return {
            "cache": {
                "text": _ns(self.cache.text),
                "media": _ns(self.cache.media),
                "search": _ns(self.cache.search),
            },
            "rate_limits": {
                "verification": _rl(self.rate_limits.verification),
                "search": _rl(self.rate_limits.search),
                "auth": _rl(self.rate_limits.auth),
            },
            "retry": {
                "max_retries": int(self.retry.max_retries),
                "initial_delay_ms": int(self.retry.initial_delay_ms),
                "max_delay_ms": int(self.retry.max_delay_ms),
                "backoff_multiplier": float(self.retry.backoff_multiplier),
                "jitter_factor": float(self.retry.jitter_factor),
            },
            "providers": {
                "timeout_sec": float(self.providers.timeout_sec),
                "order": list(self.providers.order),
                "rank_min_results": int(self.providers.rank_min_results),
                "rank_fallback_limit": int(self.providers.rank_fallback_limit),
            },
            "features": {
                "trace_enabled": bool(self.features.trace_enabled),
                "persist_history": bool(self.features.persist_history),
            },
        }
