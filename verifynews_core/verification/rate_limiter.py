# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Sliding-window rate limiter.

Check and record happen in one synchronous stretch of `execute`, so on a
single event loop no other task can slip in between them.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from verifynews_core.llm.errors import RateLimitError
from verifynews_core.runtime_config import EngineRateLimitConfig, RateLimitConfig
from verifynews_core.utils.runtime import now_ms
from verifynews_core.utils.trace import Trace

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_denial_message(wait_ms: int) -> str:
    return f"Rate limited. Please wait {math.ceil(wait_ms / 1000)} seconds."


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    wait_ms: Optional[int] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class RateLimitStatus:
    remaining: int
    reset_in_ms: int
    is_limited: bool


class RateLimiter:
    def __init__(
        self,
        config: RateLimitConfig,
        *,
        name: str = "default",
        clock: Callable[[], int] = now_ms,
    ):
        if config.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if config.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        self.config = config
        self.name = name
        self._clock = clock
        self._timestamps: deque[int] = deque()

    def _purge(self, now: int) -> None:
        window = self.config.window_ms
        while self._timestamps and now - self._timestamps[0] >= window:
            self._timestamps.popleft()

    def can_execute(self) -> AdmissionDecision:
        now = self._clock()
        self._purge(now)

        if len(self._timestamps) >= self.config.max_requests:
            wait_ms = max(0, self._timestamps[0] + self.config.window_ms - now)
            return AdmissionDecision(
                allowed=False,
                wait_ms=wait_ms,
                message=self.config.message or default_denial_message(wait_ms),
            )
        return AdmissionDecision(allowed=True)

    def record_request(self) -> None:
        self._timestamps.append(self._clock())

    def acquire(self) -> None:
        """Admit and record one call, or raise RateLimitError."""
        decision = self.can_execute()
        if not decision.allowed:
            logger.info("[RateLimit] %s denied, wait %sms", self.name, decision.wait_ms)
            Trace.event("ratelimit.denied", {"limiter": self.name, "wait_ms": decision.wait_ms})
            raise RateLimitError(decision.message or "", decision.wait_ms or 0)
        self.record_request()

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        self.acquire()
        return await fn()

    def get_status(self) -> RateLimitStatus:
        now = self._clock()
        self._purge(now)
        count = len(self._timestamps)
        reset_in = max(0, self._timestamps[0] + self.config.window_ms - now) if self._timestamps else 0
        return RateLimitStatus(
            remaining=max(0, self.config.max_requests - count),
            reset_in_ms=reset_in,
            is_limited=count >= self.config.max_requests,
        )

    def reset(self) -> None:
        self._timestamps.clear()


@dataclass
class RateLimiterSet:
    """The three operation-class limiters a host owns for its lifetime."""
    verification: RateLimiter
    search: RateLimiter
    auth: RateLimiter

    @classmethod
    def from_config(
        cls,
        config: EngineRateLimitConfig,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> "RateLimiterSet":
        return cls(
            verification=RateLimiter(config.verification, name="verification", clock=clock),
            search=RateLimiter(config.search, name="search", clock=clock),
            auth=RateLimiter(config.auth, name="auth", clock=clock),
        )

    def items(self) -> list[tuple[str, RateLimiter]]:
        return [("verification", self.verification), ("search", self.search), ("auth", self.auth)]
