# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# VerifyNews Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with VerifyNews Engine. If not, see <https://www.gnu.org/licenses/>.

from __future__ import annotations

from typing import Sequence


class VerificationError(Exception):
    """Base of every failure raised by the verification core."""


class RateLimitError(VerificationError):
    """Admission denied by a rate limiter. Never retried."""

    def __init__(self, message: str, wait_ms: int):
        super().__init__(message)
        self.message = message
        self.wait_ms = max(0, int(wait_ms))

    def __str__(self) -> str:
        return f"{self.message} (wait_ms={self.wait_ms})"


class RetryableNetworkError(VerificationError):
    """Timeout or connection failure; worth another attempt."""


class NonRetryableError(VerificationError):
    """Auth, validation or quota failure; retrying cannot help."""


class ClaimValidationError(NonRetryableError):
    """The request carried no claim to verify."""


class ParseError(VerificationError):
    """A provider answered, but the answer is not a usable verdict."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class AggregateProviderFailure(VerificationError):
    """Every provider in the chain failed."""

    def __init__(self, last_error: BaseException | None, provider_errors: Sequence[tuple[str, BaseException]] = ()):
        last_msg = str(last_error) if last_error is not None else "no providers configured"
        super().__init__(f"All AI providers failed. Last error: {last_msg}")
        self.last_error = last_error
        self.provider_errors = list(provider_errors)
