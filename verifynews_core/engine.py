# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
VerifyNews Engine wiring.

Builds the caches, limiters, provider chain and collaborators from one
VerifyNewsConfig. The host owns the returned objects for its lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

from verifynews_core.config import VerifyNewsConfig
from verifynews_core.llm.fallback import ProviderFallbackChain, VerifierProvider
from verifynews_core.llm.model_registry import ProviderID
from verifynews_core.llm.providers import GeminiProvider, OpenAICompatibleProvider, ProxyProvider
from verifynews_core.tools.tavily_client import TavilySearchClient
from verifynews_core.verification.cache_store import CacheRegistry
from verifynews_core.verification.history import HistoryStore, InMemoryHistoryStore, JsonlHistoryStore
from verifynews_core.verification.orchestrator import SearchFn, StatusListener, VerificationOrchestrator
from verifynews_core.verification.rate_limiter import RateLimiterSet
from verifynews_core.verification.retry import RetryPolicy

logger = logging.getLogger(__name__)


def build_providers(config: VerifyNewsConfig) -> list[VerifierProvider]:
    """
    Provider adapters in configured order.

    With the AI proxy enabled every named provider would redirect to the
    same backend, so the chain collapses to a single proxy entry.
    """
    timeout = config.runtime.providers.timeout_sec

    if config.use_ai_proxy:
        logger.info("[Engine] AI proxy enabled; providers %s redirect to %s",
                    list(config.runtime.providers.order), config.ai_proxy_url)
        return [
            ProxyProvider(
                base_url=config.ai_proxy_url,
                timeout_sec=timeout,
                rank_min_results=config.runtime.providers.rank_min_results,
            )
        ]

    providers: list[VerifierProvider] = []
    for name in config.runtime.providers.order:
        try:
            pid = ProviderID(name)
        except ValueError:
            logger.warning("[Engine] Unknown provider %r in provider order; skipping", name)
            continue

        match pid:
            case ProviderID.GROQ:
                providers.append(OpenAICompatibleProvider(
                    ProviderID.GROQ, api_key=config.groq_api_key, model=config.groq_model, timeout_sec=timeout,
                ))
            case ProviderID.OPENROUTER:
                providers.append(OpenAICompatibleProvider(
                    ProviderID.OPENROUTER, api_key=config.openrouter_api_key, model=config.openrouter_model,
                    timeout_sec=timeout,
                ))
            case ProviderID.GEMINI:
                providers.append(GeminiProvider(
                    api_key=config.gemini_api_key, model=config.gemini_model, timeout_sec=timeout,
                ))
            case ProviderID.PROXY:
                providers.append(ProxyProvider(base_url=config.ai_proxy_url, timeout_sec=timeout))

    return providers


def build_chain(
    config: VerifyNewsConfig,
    *,
    providers: list[VerifierProvider] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ProviderFallbackChain:
    return ProviderFallbackChain(
        providers if providers is not None else build_providers(config),
        retry_policy=RetryPolicy.from_settings(config.runtime.retry),
        sleep=sleep,
        rank_min_results=config.runtime.providers.rank_min_results,
        rank_fallback_limit=config.runtime.providers.rank_fallback_limit,
    )


def build_history_store(config: VerifyNewsConfig) -> HistoryStore:
    if config.history_path:
        return JsonlHistoryStore(Path(config.history_path))
    return InMemoryHistoryStore()


def build_orchestrator(
    config: VerifyNewsConfig,
    *,
    providers: list[VerifierProvider] | None = None,
    search: SearchFn | None = None,
    history: HistoryStore | None = None,
    caches: CacheRegistry | None = None,
    limiters: RateLimiterSet | None = None,
    on_status: StatusListener | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> VerificationOrchestrator:
    runtime = config.runtime
    logger.debug("[Engine] Runtime config: %s", runtime.to_safe_log_dict())

    search_client = None
    if search is None and config.tavily_api_key:
        search_client = TavilySearchClient(api_key=config.tavily_api_key)
    elif search is None:
        logger.info("[Engine] No search backend configured; verifying without web context")

    return VerificationOrchestrator(
        chain=build_chain(config, providers=providers, sleep=sleep),
        caches=caches or CacheRegistry.from_config(runtime.cache, cache_dir=config.cache_dir),
        limiters=limiters or RateLimiterSet.from_config(runtime.rate_limits),
        search=search,
        search_client=search_client,
        history=history if history is not None else build_history_store(config),
        persist_history=runtime.features.persist_history,
        on_status=on_status,
        runtime=runtime,
    )
