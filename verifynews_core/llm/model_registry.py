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

from enum import Enum


class ProviderID(str, Enum):
    """Canonical provider identifiers used for routing and observability."""

    # Fast / cheap tier
    GROQ = "groq"

    # Free-tier community models
    OPENROUTER = "openrouter"

    # Most capable, slowest; also the only media-capable backend
    GEMINI = "gemini"

    # Backend proxy that holds the provider keys server-side
    PROXY = "proxy"


PROVIDER_DISPLAY_NAMES = {
    ProviderID.GROQ: "Groq",
    ProviderID.OPENROUTER: "OpenRouter",
    ProviderID.GEMINI: "Gemini",
    ProviderID.PROXY: "AI Proxy",
}

OPENAI_COMPATIBLE_BASE_URLS = {
    ProviderID.GROQ: "https://api.groq.com/openai/v1",
    ProviderID.OPENROUTER: "https://openrouter.ai/api/v1",
}

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
