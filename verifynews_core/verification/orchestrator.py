# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Verification Orchestrator.

One entry point, `verify(claim, options)`, that always hands back a
renderable verdict:
- cache hit: returned without touching limiters or providers
- otherwise: verification limiter -> search context -> provider chain,
  with concurrent identical requests sharing one in-flight run
- provider chain exhausted or admission denied: a deterministic
  "unverified, confidence 0" verdict explaining the failure

Only a claim with no content at all is an error for the caller.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol

from pydantic import ValidationError

from verifynews_core.constants import (
    ANONYMOUS_USER_ID,
    CACHE_KIND_SEARCH,
    CACHE_KIND_VERIFICATION,
    ORIGINAL_ARTICLE_SOURCE_NAME,
)
from verifynews_core.llm.errors import ClaimValidationError, VerificationError
from verifynews_core.llm.failures import classify_failure, describe_failure, failure_kind_to_trace_data
from verifynews_core.llm.fallback import ProviderFallbackChain
from verifynews_core.schema.verdict import (
    Claim,
    ProviderResult,
    SearchResult,
    SelectedArticle,
    VerificationRecord,
    VerificationStatus,
    Veracity,
    VerifyOptions,
)
from verifynews_core.tools.cache_utils import normalize_cache_content, normalize_dedupe_content
from verifynews_core.runtime_config import EngineRuntimeConfig
from verifynews_core.utils.trace import Trace, current_trace_id
from verifynews_core.verification.cache_store import CacheRegistry, CacheStore
from verifynews_core.verification.dedup import RequestDeduplicator
from verifynews_core.verification.history import HistoryStore
from verifynews_core.verification.rate_limiter import RateLimiterSet

logger = logging.getLogger(__name__)

SearchFn = Callable[[str], Awaitable[list[SearchResult]]]
StatusListener = Callable[[VerificationStatus], None]


class SearchClient(Protocol):
    async def search(self, query: str) -> list[SearchResult]: ...

    async def close(self) -> None: ...


MEDIA_QUERY_PLACEHOLDER = "Media upload"
MEDIA_CONTENT_PLACEHOLDER = "Media content"


def generate_slug() -> str:
    return uuid.uuid4().hex[:13]


def build_fallback_result(message: str, article_url: Optional[str] = None) -> ProviderResult:
    """Verdict shown when no provider could judge the claim."""
    return ProviderResult(
        veracity=Veracity.UNVERIFIED,
        confidence=0,
        explanation=f"⚠️ Verification failed: {message.rstrip('.')}. Please try again later or verify manually.",
        sources=[{"name": ORIGINAL_ARTICLE_SOURCE_NAME, "url": article_url}] if article_url else [],
    )


def with_article_source(result: ProviderResult, article: Optional[SelectedArticle]) -> ProviderResult:
    if article is None or not article.url:
        return result
    return result.with_leading_source(article.title or ORIGINAL_ARTICLE_SOURCE_NAME, article.url)


class VerificationOrchestrator:
    def __init__(
        self,
        *,
        chain: ProviderFallbackChain,
        caches: CacheRegistry,
        limiters: RateLimiterSet,
        search: SearchFn | None = None,
        history: HistoryStore | None = None,
        persist_history: bool = True,
        slug_factory: Callable[[], str] = generate_slug,
        on_status: StatusListener | None = None,
        search_client: SearchClient | None = None,
        runtime: EngineRuntimeConfig | None = None,
    ):
        self.chain = chain
        self.caches = caches
        self.limiters = limiters
        # An owned client supplies search when no bare function is given and is closed with us.
        self._search_client = search_client
        self._search = search if search is not None else (search_client.search if search_client else None)
        self.runtime = runtime or EngineRuntimeConfig()
        self.history = history
        self.persist_history = persist_history
        self._slug_factory = slug_factory
        self._on_status = on_status

        self._verification_dedup = RequestDeduplicator("verification")
        self._search_dedup = RequestDeduplicator("search")
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._status = VerificationStatus.IDLE
        self.last_slug: str | None = None

    @property
    def status(self) -> VerificationStatus:
        return self._status

    def _set_status(self, status: VerificationStatus) -> None:
        if status == self._status:
            return
        logger.debug("[Orchestrator] Status %s -> %s", self._status.value, status.value)
        Trace.event("orchestrator.status", {"from": self._status.value, "to": status.value})
        self._status = status
        if self._on_status is not None:
            self._on_status(status)

    def reset(self) -> None:
        """Return to idle. In-flight network work is not cancelled; its result is simply not awaited here."""
        self._set_status(VerificationStatus.IDLE)
        self.last_slug = None

    async def verify(self, claim: Claim | str, options: VerifyOptions | None = None) -> ProviderResult:
        if isinstance(claim, str):
            claim = Claim(text=claim)
        options = options or VerifyOptions()

        if claim.is_empty():
            self._set_status(VerificationStatus.ERROR)
            raise ClaimValidationError("Please provide news content to verify")

        # Join a trace the host already started; otherwise this verification owns one.
        owns_trace = current_trace_id() is None
        if owns_trace:
            trace_id = f"{datetime.now():%Y-%m-%d_%H-%M-%S}_{uuid.uuid4().hex[:6]}"
            Trace.start(trace_id, runtime=self.runtime)
        Trace.event("orchestrator.verify.start", {
            "media_mime_type": claim.media.mime_type if claim.media is not None else None,
            "content_len": len(claim.content()),
            "has_article": options.article is not None,
        })

        try:
            if claim.media is not None:
                return await self._verify_media(claim, options)
            return await self._verify_text(claim, options)
        except VerificationError:
            raise
        except Exception:
            logger.exception("[Orchestrator] Verification crashed")
            self._set_status(VerificationStatus.ERROR)
            raise
        finally:
            if owns_trace:
                Trace.stop()

    async def _verify_text(self, claim: Claim, options: VerifyOptions) -> ProviderResult:
        content = claim.content()
        cache_key = normalize_cache_content(content)

        cached = self._cached_verdict(self.caches.text, cache_key)
        if cached is not None:
            logger.info("[Orchestrator] Returning cached verification result")
            result = with_article_source(cached, options.article)
            self._set_status(VerificationStatus.VERIFIED)
            self._schedule_persist(result, content=content, options=options, cached=True)
            return result

        self._set_status(VerificationStatus.SEARCHING)
        try:
            result = await self._verification_dedup.dedupe(
                normalize_dedupe_content(content),
                lambda: self._run_text_verification(content, cache_key),
            )
        except VerificationError as e:
            return self._degrade(e, options.article)

        result = with_article_source(result, options.article)
        self._set_status(VerificationStatus.VERIFIED)
        self._schedule_persist(result, content=content, options=options)
        return result

    async def _run_text_verification(self, content: str, cache_key: str) -> ProviderResult:
        self.limiters.verification.acquire()
        search_results = await self._search_context(content)

        self._set_status(VerificationStatus.VERIFYING)
        result = await self.chain.verify_with_fallback(content, search_results)
        self.caches.text.set(cache_key, result.to_dict(), CACHE_KIND_VERIFICATION)
        return result

    async def _verify_media(self, claim: Claim, options: VerifyOptions) -> ProviderResult:
        media = claim.media
        assert media is not None
        context = (claim.text or "").strip()
        cache_content = f"{media.mime_type}:{media.data}"
        if context:
            cache_content = f"{cache_content}:{context}"

        cached = self._cached_verdict(self.caches.media, cache_content)
        if cached is not None:
            logger.info("[Orchestrator] Returning cached media verification result")
            self._set_status(VerificationStatus.VERIFIED)
            self._schedule_persist(cached, content=context, options=options, media_mime_type=media.mime_type, cached=True)
            return cached

        self._set_status(VerificationStatus.VERIFYING if not context else VerificationStatus.SEARCHING)
        try:
            result = await self._verification_dedup.dedupe(
                self.caches.media.make_key(cache_content, CACHE_KIND_VERIFICATION),
                lambda: self._run_media_verification(claim, cache_content),
            )
        except VerificationError as e:
            return self._degrade(e, None)

        self._set_status(VerificationStatus.VERIFIED)
        self._schedule_persist(result, content=context, options=options, media_mime_type=media.mime_type)
        return result

    async def _run_media_verification(self, claim: Claim, cache_content: str) -> ProviderResult:
        media = claim.media
        assert media is not None
        context = (claim.text or "").strip()

        self.limiters.verification.acquire()
        search_results = await self._search_context(context) if context else []

        self._set_status(VerificationStatus.VERIFYING)
        result = await self.chain.verify_media_with_fallback(media, context, search_results)
        self.caches.media.set(cache_content, result.to_dict(), CACHE_KIND_VERIFICATION)
        return result

    def _cached_verdict(self, cache: CacheStore, content: str) -> ProviderResult | None:
        raw = cache.get(content, CACHE_KIND_VERIFICATION)
        if raw is None:
            return None
        try:
            return ProviderResult.model_validate(raw)
        except ValidationError as e:
            logger.warning("[Orchestrator] Dropping unreadable cached verdict: %s", e)
            cache.remove(content, CACHE_KIND_VERIFICATION)
            return None

    def _degrade(self, exc: BaseException, article: Optional[SelectedArticle]) -> ProviderResult:
        message = describe_failure(exc)
        logger.warning("[Orchestrator] Verification degraded: %s", exc)
        Trace.event("orchestrator.degraded", failure_kind_to_trace_data(classify_failure(exc), exc))
        self._set_status(VerificationStatus.VERIFIED)
        return build_fallback_result(message, article.url if article is not None else None)

    async def _search_context(self, content: str) -> list[SearchResult]:
        """Search results for `content`; any failure degrades to no context."""
        if self._search is None:
            return []
        query = normalize_dedupe_content(content)

        cached = self.caches.search.get(query, CACHE_KIND_SEARCH)
        if isinstance(cached, list):
            try:
                return [SearchResult.model_validate(item) for item in cached]
            except ValidationError as e:
                logger.warning("[Orchestrator] Dropping unreadable cached search results: %s", e)
                self.caches.search.remove(query, CACHE_KIND_SEARCH)

        try:
            return await self._search_dedup.dedupe(query, lambda: self._run_search(query))
        except Exception as e:
            logger.warning("[Orchestrator] Could not fetch search results: %s", e)
            Trace.event("search.failed", failure_kind_to_trace_data(classify_failure(e), e))
            return []

    async def _run_search(self, query: str) -> list[SearchResult]:
        self.limiters.search.acquire()
        assert self._search is not None
        results = await self._search(query)
        ranked = await self.chain.rank_search_results_with_fallback(query, results)
        self.caches.search.set(query, [r.to_dict() for r in ranked], CACHE_KIND_SEARCH)
        return ranked

    def _schedule_persist(
        self,
        result: ProviderResult,
        *,
        content: str,
        options: VerifyOptions,
        media_mime_type: str | None = None,
        cached: bool = False,
    ) -> None:
        slug = options.slug or self._slug_factory()
        self.last_slug = slug
        if self.history is None or not self.persist_history:
            return

        task = asyncio.ensure_future(
            self._persist(result, slug=slug, content=content, options=options,
                          media_mime_type=media_mime_type, cached=cached)
        )
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _persist(
        self,
        result: ProviderResult,
        *,
        slug: str,
        content: str,
        options: VerifyOptions,
        media_mime_type: str | None,
        cached: bool,
    ) -> None:
        assert self.history is not None
        is_media = media_mime_type is not None

        if options.title:
            title = options.title
        elif is_media:
            title = options.query or f"Media Verification {datetime.now(timezone.utc):%Y-%m-%d}"
        else:
            title = await self.chain.generate_title_with_fallback(content or options.query)

        record = VerificationRecord(
            slug=slug,
            title=title,
            query=options.query or (MEDIA_QUERY_PLACEHOLDER if is_media else content),
            content=content or (MEDIA_CONTENT_PLACEHOLDER if is_media else ""),
            result=result,
            user_id=options.user_id or ANONYMOUS_USER_ID,
            article=options.article,
            media_mime_type=media_mime_type,
            cached=cached,
        )

        if options.user_id:
            try:
                await self.history.save_history(record)
            except Exception as e:
                self._persist_failed("history", slug, e)

        try:
            await self.history.save_to_collection(record)
        except Exception as e:
            self._persist_failed("collection", slug, e)

    def _persist_failed(self, target: str, slug: str, exc: BaseException) -> None:
        logger.warning("[Orchestrator] Failed to save verification %s to %s: %s", slug, target, exc)
        Trace.event("persist.failed", {"target": target, "slug": slug, "error": str(exc)[:200]})

    async def wait_for_pending_writes(self) -> None:
        """Drain background persistence; call before shutting the loop down."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    async def close(self) -> None:
        await self.wait_for_pending_writes()
        await self.chain.close()
        if self._search_client is not None:
            await self._search_client.close()
