# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.

"""Unit tests for the provider fallback chain."""

import pytest

from tests.fixtures.verification_fixtures import FakeProvider, make_result, make_search_results
from verifynews_core.llm.errors import AggregateProviderFailure, NonRetryableError, ParseError, RetryableNetworkError
from verifynews_core.llm.fallback import ProviderFallbackChain
from verifynews_core.schema.verdict import MediaInput
from verifynews_core.verification.retry import RetryPolicy


@pytest.mark.asyncio
async def test_first_success_wins_and_is_tagged():
    groq = FakeProvider("Groq", result=make_result(veracity="true"))
    gemini = FakeProvider("Gemini")
    chain = ProviderFallbackChain([groq, gemini])

    result = await chain.verify_with_fallback("claim", [])

    assert result.veracity.value == "true"
    assert result.provider == "Groq"
    gemini.verify.assert_not_called()


@pytest.mark.asyncio
async def test_falls_through_to_next_provider():
    groq = FakeProvider("Groq", error=NonRetryableError("Groq API key is missing"))
    openrouter = FakeProvider("OpenRouter", error=ParseError("Invalid JSON response from AI provider"))
    gemini = FakeProvider("Gemini")
    chain = ProviderFallbackChain([groq, openrouter, gemini])

    result = await chain.verify_with_fallback("claim", make_search_results(2))

    assert result.provider == "Gemini"
    groq.verify.assert_awaited_once()
    openrouter.verify.assert_awaited_once()


@pytest.mark.asyncio
async def test_exhaustion_raises_aggregate_with_last_error():
    chain = ProviderFallbackChain([
        FakeProvider("Groq", error=RetryableNetworkError("Groq request timed out")),
        FakeProvider("Gemini", error=NonRetryableError("Gemini API error (403): forbidden")),
    ])

    with pytest.raises(AggregateProviderFailure) as exc_info:
        await chain.verify_with_fallback("claim")

    assert "All AI providers failed" in str(exc_info.value)
    assert "Gemini API error (403): forbidden" in str(exc_info.value)
    assert [name for name, _ in exc_info.value.provider_errors] == ["Groq", "Gemini"]


@pytest.mark.asyncio
async def test_empty_chain_fails_cleanly():
    with pytest.raises(AggregateProviderFailure):
        await ProviderFallbackChain([]).verify_with_fallback("claim")


@pytest.mark.asyncio
async def test_retry_wraps_each_provider_call(no_sleep):
    flaky = FakeProvider("Groq")
    flaky.verify.side_effect = [RetryableNetworkError("network error"), make_result()]
    backup = FakeProvider("Gemini")
    chain = ProviderFallbackChain([flaky, backup], retry_policy=RetryPolicy(max_retries=2), sleep=no_sleep)

    result = await chain.verify_with_fallback("claim")

    assert result.provider == "Groq"
    assert flaky.verify.await_count == 2
    backup.verify.assert_not_called()


@pytest.mark.asyncio
async def test_media_only_uses_capable_providers():
    text_only = FakeProvider("Groq")
    gemini = FakeProvider("Gemini", supports_media=True)
    chain = ProviderFallbackChain([text_only, gemini])
    media = MediaInput.from_bytes(b"\x89PNG", "image/png")

    result = await chain.verify_media_with_fallback(media, "caption")

    assert result.provider == "Gemini"
    text_only.verify_media.assert_not_called()
    gemini.verify_media.assert_awaited_once_with(media, "caption", ())


@pytest.mark.asyncio
async def test_title_fallback_returns_empty_string_on_total_failure():
    chain = ProviderFallbackChain([FakeProvider("Groq", error=RuntimeError("boom"))])
    assert await chain.generate_title_with_fallback("text") == ""


@pytest.mark.asyncio
async def test_title_uses_first_provider_that_answers():
    chain = ProviderFallbackChain([
        FakeProvider("Groq", error=RuntimeError("boom")),
        FakeProvider("OpenRouter"),
    ])
    assert await chain.generate_title_with_fallback("text") == "Title from OpenRouter"


@pytest.mark.asyncio
async def test_ranking_skipped_for_short_lists():
    provider = FakeProvider("Groq")
    chain = ProviderFallbackChain([provider])
    results = make_search_results(3)

    assert await chain.rank_search_results_with_fallback("c", results) == results
    provider.rank.assert_not_called()


@pytest.mark.asyncio
async def test_ranking_reorders_via_provider():
    chain = ProviderFallbackChain([FakeProvider("Groq")])
    results = make_search_results(5)

    ranked = await chain.rank_search_results_with_fallback("c", results)
    assert ranked == list(reversed(results))


@pytest.mark.asyncio
async def test_ranking_total_failure_keeps_first_ten():
    chain = ProviderFallbackChain([FakeProvider("Groq", error=ParseError("missing rankedIds"))])
    results = make_search_results(14)

    assert await chain.rank_search_results_with_fallback("c", results) == results[:10]
