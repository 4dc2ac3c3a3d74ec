# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.

"""Unit tests for the sliding-window rate limiter."""

import pytest
from unittest.mock import AsyncMock

from verifynews_core.constants import VERIFICATION_RATE_LIMIT_MESSAGE
from verifynews_core.llm.errors import RateLimitError
from verifynews_core.runtime_config import EngineRateLimitConfig, RateLimitConfig
from verifynews_core.verification.rate_limiter import RateLimiter, RateLimiterSet, default_denial_message


@pytest.mark.unit
def test_window_admits_max_then_denies(tight_limit, clock):
    limiter = RateLimiter(tight_limit, clock=clock)
    for _ in range(10):
        assert limiter.can_execute().allowed
        limiter.record_request()

    decision = limiter.can_execute()
    assert decision.allowed is False
    assert decision.wait_ms == 60_000
    assert decision.message == default_denial_message(60_000)

    clock.advance(60_001)
    assert limiter.can_execute().allowed


@pytest.mark.unit
def test_wait_is_measured_from_oldest_request(tight_limit, clock):
    limiter = RateLimiter(tight_limit, clock=clock)
    limiter.record_request()
    clock.advance(15_000)
    for _ in range(9):
        limiter.record_request()

    clock.advance(5_000)
    assert limiter.can_execute().wait_ms == 40_000


@pytest.mark.unit
def test_default_message_rounds_seconds_up():
    assert default_denial_message(1) == "Rate limited. Please wait 1 seconds."
    assert default_denial_message(59_001) == "Rate limited. Please wait 60 seconds."


@pytest.mark.unit
@pytest.mark.asyncio
async def test_execute_raises_typed_error_and_skips_fn(clock):
    limiter = RateLimiter(RateLimitConfig(1, 60_000, VERIFICATION_RATE_LIMIT_MESSAGE), clock=clock)
    fn = AsyncMock(return_value="ok")

    assert await limiter.execute(fn) == "ok"
    with pytest.raises(RateLimitError) as exc_info:
        await limiter.execute(fn)

    assert exc_info.value.message == VERIFICATION_RATE_LIMIT_MESSAGE
    assert exc_info.value.wait_ms == 60_000
    fn.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_execute_records_even_when_fn_fails(clock):
    limiter = RateLimiter(RateLimitConfig(2, 60_000), clock=clock)
    with pytest.raises(ValueError):
        await limiter.execute(AsyncMock(side_effect=ValueError("boom")))
    assert limiter.get_status().remaining == 1


@pytest.mark.unit
def test_status_and_reset(clock):
    limiter = RateLimiter(RateLimitConfig(2, 10_000), clock=clock)
    status = limiter.get_status()
    assert (status.remaining, status.reset_in_ms, status.is_limited) == (2, 0, False)

    limiter.record_request()
    clock.advance(4_000)
    limiter.record_request()
    status = limiter.get_status()
    assert status.remaining == 0
    assert status.is_limited is True
    assert status.reset_in_ms == 6_000

    limiter.reset()
    assert limiter.get_status().remaining == 2


def test_invalid_config_rejected():
    with pytest.raises(ValueError):
        RateLimiter(RateLimitConfig(0, 1000))
    with pytest.raises(ValueError):
        RateLimiter(RateLimitConfig(1, 0))


def test_limiter_set_budgets(clock):
    limiters = RateLimiterSet.from_config(EngineRateLimitConfig(), clock=clock)
    budgets = {name: (l.config.max_requests, l.config.window_ms) for name, l in limiters.items()}
    assert budgets == {
        "verification": (10, 60_000),
        "search": (30, 60_000),
        "auth": (5, 300_000),
    }
    messages = {l.config.message for _, l in limiters.items()}
    assert len(messages) == 3
