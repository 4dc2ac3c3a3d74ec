# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Exponential-backoff retry executor.

Rate-limit denials are rethrown immediately and never consume a retry.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from verifynews_core.llm.errors import RateLimitError
from verifynews_core.llm.failures import classify_failure, failure_kind_to_trace_data, is_retryable_network_error
from verifynews_core.runtime_config import RetrySettings
from verifynews_core.utils.trace import Trace

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryCallback = Callable[[int, BaseException, float], None]


def _always_retryable(_: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_delay_ms: float = 1000
    max_delay_ms: float = 30_000
    backoff_multiplier: float = 2.0
    jitter_factor: float = 0.1
    is_retryable: Callable[[BaseException], bool] = field(default=_always_retryable)

    @classmethod
    def from_settings(
        cls,
        settings: RetrySettings,
        *,
        is_retryable: Callable[[BaseException], bool] = is_retryable_network_error,
    ) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            initial_delay_ms=settings.initial_delay_ms,
            max_delay_ms=settings.max_delay_ms,
            backoff_multiplier=settings.backoff_multiplier,
            jitter_factor=settings.jitter_factor,
            is_retryable=is_retryable,
        )


# Network calls: only transport-class failures, shorter ceiling.
DEFAULT_NETWORK_RETRY_POLICY = RetryPolicy(max_delay_ms=10_000, is_retryable=is_retryable_network_error)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    on_retry: RetryCallback | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    uniform: Callable[[float, float], float] = random.uniform,
    label: str = "operation",
) -> T:
    """
    Run `fn` until it succeeds or the policy gives up.

    `on_retry(attempt_number, error, next_delay_ms)` fires before each backoff.
    `sleep` receives seconds, like `asyncio.sleep`.
    """
    policy = policy or RetryPolicy()
    delay = float(policy.initial_delay_ms)
    attempt = 0

    while True:
        try:
            return await fn()
        except RateLimitError:
            raise
        except Exception as e:
            if not policy.is_retryable(e) or attempt >= policy.max_retries:
                raise

            jitter = delay * policy.jitter_factor * uniform(-1.0, 1.0)
            actual_delay = max(0.0, min(delay + jitter, float(policy.max_delay_ms)))
            attempt += 1

            logger.warning(
                "[Retry] %s failed (attempt %d/%d): %s. Retrying in %.0fms",
                label, attempt, policy.max_retries, e, actual_delay,
            )
            Trace.event("retry.scheduled", {
                "label": label,
                "attempt": attempt,
                "delay_ms": round(actual_delay),
                **failure_kind_to_trace_data(classify_failure(e), e),
            })
            if on_retry is not None:
                on_retry(attempt, e, actual_delay)

            await sleep(actual_delay / 1000.0)
            delay = min(delay * policy.backoff_multiplier, float(policy.max_delay_ms))
