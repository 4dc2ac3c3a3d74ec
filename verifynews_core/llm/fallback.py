# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Provider Fallback Chain.

Tries interchangeable verifier providers in order until one answers. The
chain itself never retries; when a retry policy is given, every single
provider call is wrapped in the retry executor before the chain moves on.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol, Sequence, TypeVar

from verifynews_core.llm.errors import AggregateProviderFailure
from verifynews_core.llm.failures import classify_failure, failure_kind_to_trace_data
from verifynews_core.schema.verdict import MediaInput, ProviderResult, SearchResult
from verifynews_core.utils.trace import Trace
from verifynews_core.verification.retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VerifierProvider(Protocol):
    name: str
    supports_media: bool

    async def verify(self, content: str, search_results: Sequence[SearchResult] = ()) -> ProviderResult: ...

    async def verify_media(
        self,
        media: MediaInput,
        additional_context: str = "",
        search_results: Sequence[SearchResult] = (),
    ) -> ProviderResult: ...

    async def generate_title(self, text: str) -> str: ...

    async def rank(self, content: str, results: Sequence[SearchResult]) -> list[SearchResult]: ...

    async def close(self) -> None: ...


class ProviderFallbackChain:
    def __init__(
        self,
        providers: Sequence[VerifierProvider],
        *,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rank_min_results: int = 3,
        rank_fallback_limit: int = 10,
    ):
        self.providers = list(providers)
        self.retry_policy = retry_policy
        self._sleep = sleep
        self.rank_min_results = int(rank_min_results)
        self.rank_fallback_limit = int(rank_fallback_limit)

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self.providers]

    async def _call(self, task: str, provider: VerifierProvider, fn: Callable[[], Awaitable[T]]) -> T:
        if self.retry_policy is None:
            return await fn()
        return await with_retry(fn, self.retry_policy, sleep=self._sleep, label=f"{provider.name} {task}")

    async def _run(
        self,
        task: str,
        providers: Sequence[VerifierProvider],
        call: Callable[[VerifierProvider], Awaitable[T]],
    ) -> tuple[T, VerifierProvider]:
        last_error: BaseException | None = None
        errors: list[tuple[str, BaseException]] = []

        for provider in providers:
            try:
                result = await self._call(task, provider, lambda p=provider: call(p))
            except Exception as e:
                kind = classify_failure(e)
                logger.warning(
                    "[Fallback] %s failed for %s: %s (kind=%s). Trying next provider.",
                    provider.name, task, e, kind.value if kind else "unknown",
                )
                Trace.event("provider.call.failed", {
                    "task": task,
                    "provider": provider.name,
                    **failure_kind_to_trace_data(kind, e),
                })
                last_error = e
                errors.append((provider.name, e))
                continue

            Trace.event("provider.call.ok", {
                "task": task,
                "provider": provider.name,
                "is_fallback": bool(errors),
            })
            return result, provider

        logger.error("[Fallback] All providers failed for %s. Last error: %s", task, last_error)
        Trace.event("provider.chain.exhausted", {
            "task": task,
            "providers": [name for name, _ in errors],
            "last_error": str(last_error)[:200] if last_error else None,
        })
        raise AggregateProviderFailure(last_error, errors)

    async def verify_with_fallback(
        self,
        content: str,
        search_results: Sequence[SearchResult] = (),
    ) -> ProviderResult:
        """
        Verify `content` with the first provider that answers.

        The result is tagged with the answering provider's name.
        Raises AggregateProviderFailure when every provider fails.
        """
        result, provider = await self._run(
            "verify", self.providers, lambda p: p.verify(content, search_results)
        )
        return result.model_copy(update={"provider": provider.name})

    async def verify_media_with_fallback(
        self,
        media: MediaInput,
        additional_context: str = "",
        search_results: Sequence[SearchResult] = (),
    ) -> ProviderResult:
        capable = [p for p in self.providers if p.supports_media]
        result, provider = await self._run(
            "verify_media", capable, lambda p: p.verify_media(media, additional_context, search_results)
        )
        return result.model_copy(update={"provider": provider.name})

    async def generate_title_with_fallback(self, text: str) -> str:
        """Short title for `text`; empty string when no provider can produce one."""
        try:
            title, _ = await self._run("title", self.providers, lambda p: p.generate_title(text))
        except AggregateProviderFailure as e:
            logger.warning("[Fallback] Title generation failed: %s", e)
            return ""
        return title

    async def rank_search_results_with_fallback(
        self,
        content: str,
        results: Sequence[SearchResult],
    ) -> list[SearchResult]:
        items = list(results)
        if len(items) <= self.rank_min_results:
            return items
        try:
            ranked, _ = await self._run("rank", self.providers, lambda p: p.rank(content, items))
        except AggregateProviderFailure as e:
            logger.warning("[Fallback] Ranking failed, keeping search order: %s", e)
            return items[: self.rank_fallback_limit]
        return ranked

    async def close(self) -> None:
        for p in self.providers:
            await p.close()
