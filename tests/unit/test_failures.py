# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.

"""Unit tests for failure classification and user-facing descriptions."""

import asyncio

import httpx

from verifynews_core.constants import VERIFICATION_RATE_LIMIT_MESSAGE
from verifynews_core.llm.errors import (
    AggregateProviderFailure,
    ClaimValidationError,
    NonRetryableError,
    ParseError,
    RateLimitError,
    RetryableNetworkError,
)
from verifynews_core.llm.failures import (
    DEFAULT_USER_MESSAGE,
    FailureKind,
    classify_failure,
    describe_failure,
    failure_kind_to_trace_data,
    is_retryable_network_error,
)


def test_typed_errors_classify_by_type():
    assert classify_failure(RateLimitError("wait", 1000)) == FailureKind.RATE_LIMITED
    assert classify_failure(AggregateProviderFailure(ValueError("x"))) == FailureKind.ALL_PROVIDERS_FAILED
    assert classify_failure(ParseError("bad")) == FailureKind.INVALID_JSON
    assert classify_failure(ClaimValidationError("empty")) == FailureKind.VALIDATION
    assert classify_failure(RetryableNetworkError("AI service request timed out")) == FailureKind.TIMEOUT
    assert classify_failure(RetryableNetworkError("Groq network error: reset")) == FailureKind.NETWORK
    assert classify_failure(NonRetryableError("Groq API key is missing")) == FailureKind.AUTH
    assert classify_failure(NonRetryableError("Gemini API error (429): quota exhausted")) == FailureKind.QUOTA
    assert classify_failure(NonRetryableError("Gemini API error (400): bad request")) == FailureKind.VALIDATION


def test_foreign_errors_classify_by_type_then_keywords():
    request = httpx.Request("POST", "https://example.com")
    assert classify_failure(httpx.ReadTimeout("read timeout", request=request)) == FailureKind.TIMEOUT
    assert classify_failure(httpx.ConnectError("refused", request=request)) == FailureKind.NETWORK
    assert classify_failure(asyncio.TimeoutError()) == FailureKind.TIMEOUT
    assert classify_failure(ConnectionResetError()) == FailureKind.NETWORK

    response = httpx.Response(401, request=request)
    assert classify_failure(httpx.HTTPStatusError("401", request=request, response=response)) == FailureKind.AUTH

    assert classify_failure(Exception("Failed to fetch")) == FailureKind.NETWORK
    assert classify_failure(Exception("Expecting value: line 1 column 1")) == FailureKind.INVALID_JSON
    assert classify_failure(Exception("Some business logic error")) is None


def test_default_retry_predicate_only_accepts_network_class():
    assert is_retryable_network_error(RetryableNetworkError("anything"))
    assert is_retryable_network_error(Exception("ECONNRESET"))
    assert is_retryable_network_error(Exception("request timed out"))
    assert not is_retryable_network_error(RateLimitError("network", 10))
    assert not is_retryable_network_error(NonRetryableError("network error"))
    assert not is_retryable_network_error(Exception("Invalid input"))


def test_describe_failure_phrases():
    assert describe_failure(RateLimitError(VERIFICATION_RATE_LIMIT_MESSAGE, 1000)) == VERIFICATION_RATE_LIMIT_MESSAGE
    assert describe_failure(RetryableNetworkError("Groq network error")) == (
        "Network connectivity issue - verification service temporarily unavailable"
    )
    assert describe_failure(AggregateProviderFailure(NonRetryableError("Gemini API key is missing"))) == (
        "API configuration issue"
    )
    assert describe_failure(AggregateProviderFailure(ParseError("bad json"))) == (
        "All verification services are currently unavailable"
    )
    assert describe_failure(Exception("???")) == DEFAULT_USER_MESSAGE


def test_trace_data_is_truncated():
    data = failure_kind_to_trace_data(FailureKind.NETWORK, Exception("x" * 500))
    assert data["failure_kind"] == "network"
    assert data["error_type"] == "Exception"
    assert len(data["error_message"]) == 200
    assert failure_kind_to_trace_data(None, Exception("y"))["failure_kind"] == "unknown"
