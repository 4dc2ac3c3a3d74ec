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

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from verifynews_core.constants import DEFAULT_PROVIDER_MODELS
from verifynews_core.runtime_config import EngineRuntimeConfig


class VerifyNewsConfig(BaseModel):
    """
    Configuration for the VerifyNews verification engine.
    Decouples the engine from environment variables.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Provider credentials
    groq_api_key: Optional[str] = Field(None, description="Groq API key (OpenAI-compatible endpoint)")
    openrouter_api_key: Optional[str] = Field(None, description="OpenRouter API key")
    gemini_api_key: Optional[str] = Field(None, description="Google Gemini API key")

    # Provider models
    groq_model: str = Field(DEFAULT_PROVIDER_MODELS["groq"], description="Groq model name")
    openrouter_model: str = Field(DEFAULT_PROVIDER_MODELS["openrouter"], description="OpenRouter model name")
    gemini_model: str = Field(DEFAULT_PROVIDER_MODELS["gemini"], description="Gemini model name")

    # Backend proxy (keeps provider keys off the client)
    use_ai_proxy: bool = Field(False, description="Route every provider call through the AI proxy")
    ai_proxy_url: str = Field("/api/ai", description="Base URL of the AI proxy backend")

    # Search
    tavily_api_key: Optional[str] = Field(None, description="Tavily API key for web search")

    # Local state
    cache_dir: Optional[str] = Field(None, description="diskcache directory; in-memory cache when unset")
    history_path: Optional[str] = Field(None, description="Directory holding history.jsonl and collection.jsonl; in-memory when unset")

    runtime: EngineRuntimeConfig = Field(default_factory=EngineRuntimeConfig)

    @classmethod
    def from_env(cls) -> "VerifyNewsConfig":
        import os

        def _env(name: str) -> Optional[str]:
            v = (os.getenv(name) or "").strip()
            return v or None

        return cls(
            groq_api_key=_env("VERIFYNEWS_GROQ_API_KEY") or _env("GROQ_API_KEY"),
            openrouter_api_key=_env("VERIFYNEWS_OPENROUTER_API_KEY") or _env("OPENROUTER_API_KEY"),
            gemini_api_key=_env("VERIFYNEWS_GEMINI_API_KEY") or _env("GEMINI_API_KEY"),
            groq_model=_env("VERIFYNEWS_GROQ_MODEL") or DEFAULT_PROVIDER_MODELS["groq"],
            openrouter_model=_env("VERIFYNEWS_OPENROUTER_MODEL") or DEFAULT_PROVIDER_MODELS["openrouter"],
            gemini_model=_env("VERIFYNEWS_GEMINI_MODEL") or DEFAULT_PROVIDER_MODELS["gemini"],
            use_ai_proxy=(_env("VERIFYNEWS_USE_AI_PROXY") or "").lower() == "true",
            ai_proxy_url=_env("VERIFYNEWS_AI_PROXY_URL") or "/api/ai",
            tavily_api_key=_env("VERIFYNEWS_TAVILY_API_KEY") or _env("TAVILY_API_KEY"),
            cache_dir=_env("VERIFYNEWS_CACHE_DIR"),
            history_path=_env("VERIFYNEWS_HISTORY_PATH"),
            runtime=EngineRuntimeConfig.load_from_env(),
        )
