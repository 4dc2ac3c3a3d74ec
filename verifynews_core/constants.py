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

from typing import Dict

# Cache partitions. Each prefix owns its own TTL/size policy.
TEXT_CACHE_NAMESPACE: str = "verify-news-text-cache"
MEDIA_CACHE_NAMESPACE: str = "verify-news-media-cache"
SEARCH_CACHE_NAMESPACE: str = "verify-news-search-cache"

# Kind passed with each cache read/write inside a partition.
CACHE_KIND_VERIFICATION: str = "verification"
CACHE_KIND_SEARCH: str = "search"
CACHE_KIND_GENERAL: str = "general"

# User-facing limiter messages.
VERIFICATION_RATE_LIMIT_MESSAGE: str = (
    "You are verifying too quickly. Please wait a moment before trying again."
)
SEARCH_RATE_LIMIT_MESSAGE: str = "Too many searches. Please wait a moment before searching again."
AUTH_RATE_LIMIT_MESSAGE: str = "Too many login attempts. Please wait 5 minutes before trying again."

# Fastest/cheapest first, most capable last.
DEFAULT_PROVIDER_ORDER: tuple[str, ...] = ("groq", "openrouter", "gemini")

# Default model per provider (override via config).
DEFAULT_PROVIDER_MODELS: Dict[str, str] = {
    "groq": "llama-3.3-70b-versatile",
    "openrouter": "mistralai/devstral-2512:free",
    "gemini": "gemini-2.5-flash",
}

ORIGINAL_ARTICLE_SOURCE_NAME: str = "Original Article"
ANONYMOUS_USER_ID: str = "anonymous"
