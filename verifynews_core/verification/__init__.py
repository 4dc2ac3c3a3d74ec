"""Caching, admission control, retry, deduplication and orchestration."""

from .cache_store import CacheRegistry, CacheStore, DiskCacheBackend, MemoryCacheBackend
from .dedup import RequestDeduplicator
from .rate_limiter import RateLimiter, RateLimiterSet
from .retry import RetryPolicy, with_retry

__all__ = [
    "CacheRegistry",
    "CacheStore",
    "DiskCacheBackend",
    "MemoryCacheBackend",
    "RequestDeduplicator",
    "RateLimiter",
    "RateLimiterSet",
    "RetryPolicy",
    "with_retry",
]
