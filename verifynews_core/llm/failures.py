# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Provider Failure Classification.

Typed failures from this package are classified by type. Foreign exceptions
(httpx, openai, builtins) are classified by type where possible and by
message keywords as a last resort:
- RATE_LIMITED: local limiter denied admission
- NETWORK / TIMEOUT: transient transport failures (retryable)
- AUTH / QUOTA / VALIDATION: permanent for this request
- INVALID_JSON / SCHEMA_VALIDATION: provider answered with an unusable body
- ALL_PROVIDERS_FAILED: the fallback chain is exhausted
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

import httpx
import openai

from verifynews_core.llm.errors import (
    AggregateProviderFailure,
    ClaimValidationError,
    NonRetryableError,
    ParseError,
    RateLimitError,
    RetryableNetworkError,
)


class FailureKind(Enum):
    """Classification of failures seen while verifying a claim."""

    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTH = "auth"
    QUOTA = "quota"
    VALIDATION = "validation"
    INVALID_JSON = "invalid_json"
    SCHEMA_VALIDATION = "schema_validation"
    SAFETY_BLOCKED = "safety_blocked"
    ALL_PROVIDERS_FAILED = "all_providers_failed"


# Keywords that indicate quota / remote rate limiting
_QUOTA_KEYWORDS = (
    "quota",
    "rate limit",
    "rate_limit",
    "429",
    "too many requests",
)

# Keywords that indicate authentication problems
_AUTH_KEYWORDS = (
    "api key",
    "unauthorized",
    "401",
    "403",
    "authentication",
)

# Keywords that indicate timeout errors
_TIMEOUT_KEYWORDS = (
    "timeout",
    "timed out",
    "deadline exceeded",
)

# Keywords that indicate connection errors
_NETWORK_KEYWORDS = (
    "network",
    "fetch",
    "econnreset",
    "enotfound",
    "connection reset",
    "connection refused",
    "name not resolved",
    "unreachable",
)

# Keywords that indicate JSON parsing errors
_JSON_ERROR_KEYWORDS = (
    "json",
    "expecting value",
    "unexpected token",
)

# Keywords that indicate schema validation errors
_SCHEMA_ERROR_KEYWORDS = (
    "schema",
    "validation failed",
    "missing required",
)


def _classify_by_keywords(exc: BaseException) -> FailureKind | None:
    error_msg = str(exc).lower()

    if any(kw in error_msg for kw in _QUOTA_KEYWORDS):
        return FailureKind.QUOTA
    if any(kw in error_msg for kw in _AUTH_KEYWORDS):
        return FailureKind.AUTH
    if any(kw in error_msg for kw in _TIMEOUT_KEYWORDS):
        return FailureKind.TIMEOUT
    if any(kw in error_msg for kw in _NETWORK_KEYWORDS):
        return FailureKind.NETWORK
    if any(kw in error_msg for kw in _JSON_ERROR_KEYWORDS):
        return FailureKind.INVALID_JSON
    if any(kw in error_msg for kw in _SCHEMA_ERROR_KEYWORDS):
        return FailureKind.SCHEMA_VALIDATION
    if "safety" in error_msg:
        return FailureKind.SAFETY_BLOCKED
    return None


def _classify_http_status(status_code: int) -> FailureKind | None:
    if status_code in (401, 403):
        return FailureKind.AUTH
    if status_code == 429:
        return FailureKind.QUOTA
    if status_code >= 500:
        return FailureKind.NETWORK
    return None


def classify_failure(exc: BaseException) -> FailureKind | None:
    """
    Classify an exception into a failure kind.

    Returns None when the failure is not recognized.
    """
    match exc:
        case RateLimitError():
            return FailureKind.RATE_LIMITED
        case AggregateProviderFailure():
            return FailureKind.ALL_PROVIDERS_FAILED
        case ParseError():
            return FailureKind.INVALID_JSON
        case ClaimValidationError():
            return FailureKind.VALIDATION
        case RetryableNetworkError():
            return FailureKind.TIMEOUT if _classify_by_keywords(exc) == FailureKind.TIMEOUT else FailureKind.NETWORK
        case NonRetryableError():
            kind = _classify_by_keywords(exc)
            return kind if kind in (FailureKind.AUTH, FailureKind.QUOTA) else FailureKind.VALIDATION
        case openai.AuthenticationError() | openai.PermissionDeniedError():
            return FailureKind.AUTH
        case openai.RateLimitError():
            return FailureKind.QUOTA
        case openai.APITimeoutError() | httpx.TimeoutException() | asyncio.TimeoutError() | TimeoutError():
            return FailureKind.TIMEOUT
        case openai.APIConnectionError() | httpx.NetworkError() | ConnectionError():
            return FailureKind.NETWORK
        case httpx.HTTPStatusError():
            kind = _classify_http_status(exc.response.status_code)
            if kind is not None:
                return kind
        case openai.APIStatusError():
            kind = _classify_http_status(exc.status_code)
            if kind is not None:
                return kind

    return _classify_by_keywords(exc)


def is_retryable_network_error(exc: BaseException) -> bool:
    """
    Default retry predicate: only network-class failures are retried.

    Rate-limit denials, auth, validation, quota and parse failures are not.
    """
    match exc:
        case RateLimitError() | NonRetryableError() | ParseError() | AggregateProviderFailure():
            return False
        case RetryableNetworkError():
            return True

    return classify_failure(exc) in (FailureKind.NETWORK, FailureKind.TIMEOUT)


_USER_MESSAGES = {
    FailureKind.NETWORK: "Network connectivity issue - verification service temporarily unavailable",
    FailureKind.QUOTA: "Service quota exceeded",
    FailureKind.AUTH: "API configuration issue",
    FailureKind.INVALID_JSON: "Response parsing error",
    FailureKind.SCHEMA_VALIDATION: "Response parsing error",
    FailureKind.TIMEOUT: "Service timeout",
    FailureKind.SAFETY_BLOCKED: "Content blocked by safety filters",
    FailureKind.ALL_PROVIDERS_FAILED: "All verification services are currently unavailable",
}

DEFAULT_USER_MESSAGE = "Verification service temporarily unavailable"


def describe_failure(exc: BaseException) -> str:
    """
    Human-readable, non-technical description of a verification failure.

    Rate-limit denials surface the limiter's own wait message.
    """
    if isinstance(exc, RateLimitError):
        return exc.message
    if isinstance(exc, AggregateProviderFailure):
        last_kind = classify_failure(exc.last_error) if exc.last_error is not None else None
        if last_kind in (FailureKind.NETWORK, FailureKind.QUOTA, FailureKind.AUTH):
            return _USER_MESSAGES[last_kind]
        return _USER_MESSAGES[FailureKind.ALL_PROVIDERS_FAILED]
    kind = classify_failure(exc)
    return _USER_MESSAGES.get(kind, DEFAULT_USER_MESSAGE) if kind else DEFAULT_USER_MESSAGE


def failure_kind_to_trace_data(kind: FailureKind | None, exc: BaseException) -> dict[str, Any]:
    """
    Convert failure info to trace event data.
    """
    return {
        "failure_kind": kind.value if kind else "unknown",
        "error_type": type(exc).__name__,
        "error_message": str(exc)[:200],
    }
