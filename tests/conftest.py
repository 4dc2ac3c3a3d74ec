# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.


import pytest
from unittest.mock import AsyncMock

from verifynews_core.runtime_config import CacheNamespaceConfig, EngineRuntimeConfig, RateLimitConfig
from verifynews_core.verification.cache_store import CacheRegistry
from verifynews_core.verification.rate_limiter import RateLimiterSet
from tests.fixtures.verification_fixtures import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def no_sleep():
    """asyncio.sleep replacement that records requested delays (seconds)."""
    return AsyncMock(return_value=None)


@pytest.fixture
def runtime():
    return EngineRuntimeConfig()


@pytest.fixture
def small_namespace():
    return CacheNamespaceConfig(namespace="test-cache", ttl_ms=60_000, max_size=3)


@pytest.fixture
def caches(runtime, clock):
    return CacheRegistry.from_config(runtime.cache, clock=clock)


@pytest.fixture
def limiters(runtime, clock):
    return RateLimiterSet.from_config(runtime.rate_limits, clock=clock)


@pytest.fixture
def tight_limit():
    return RateLimitConfig(max_requests=10, window_ms=60_000)
