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

"""
Verifier provider adapters.

Each adapter turns a prompt into raw model text and raw text into a
ProviderResult. Adapters never retry and never fall back; they translate
transport failures into the typed errors the retry executor understands:
- RetryableNetworkError: timeouts, connection failures, 5xx
- NonRetryableError: missing key, 401/403, remote quota, other 4xx
- ParseError: the model answered with something that is not a verdict
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
import openai
from openai import AsyncOpenAI

from verifynews_core.llm.errors import NonRetryableError, ParseError, RetryableNetworkError
from verifynews_core.llm.model_registry import (
    GEMINI_API_BASE_URL,
    OPENAI_COMPATIBLE_BASE_URLS,
    PROVIDER_DISPLAY_NAMES,
    ProviderID,
)
from verifynews_core.llm.prompts import (
    build_media_prompt,
    build_ranking_prompt,
    build_title_prompt,
    build_verification_prompt,
    simplify_for_ranking,
)
from verifynews_core.llm.response_parser import (
    coerce_provider_result,
    map_ranked_ids,
    parse_provider_response,
    parse_ranking_response,
    parse_title_response,
)
from verifynews_core.schema.verdict import MediaInput, ProviderResult, SearchResult

logger = logging.getLogger(__name__)


def _error_for_status(name: str, status_code: int, detail: str) -> Exception:
    msg = f"{name} API error ({status_code}): {detail}"
    if status_code == 408 or status_code >= 500:
        return RetryableNetworkError(msg)
    return NonRetryableError(msg)


def _response_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase or response.text[:200]
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if data.get("message"):
            return str(data["message"])
    return response.reason_phrase or ""


class BaseProvider:
    """
    Shared prompt/parse plumbing. Subclasses implement `_complete`.
    """

    provider_id: ProviderID
    supports_media: bool = False

    @property
    def name(self) -> str:
        return PROVIDER_DISPLAY_NAMES.get(self.provider_id, str(self.provider_id.value))

    async def _complete(self, prompt: str, *, json_output: bool, media: MediaInput | None = None) -> str:
        raise NotImplementedError

    async def verify(self, content: str, search_results: Sequence[SearchResult] = ()) -> ProviderResult:
        text = await self._complete(build_verification_prompt(content, search_results), json_output=True)
        return parse_provider_response(text)

    async def verify_media(
        self,
        media: MediaInput,
        additional_context: str = "",
        search_results: Sequence[SearchResult] = (),
    ) -> ProviderResult:
        if not self.supports_media:
            raise NonRetryableError(f"{self.name} does not support media verification")
        prompt = build_media_prompt(media.kind.value, additional_context, search_results)
        text = await self._complete(prompt, json_output=True, media=media)
        return parse_provider_response(text)

    async def generate_title(self, text: str) -> str:
        raw = await self._complete(build_title_prompt(text), json_output=False)
        title = parse_title_response(raw)
        if not title:
            raise ParseError(f"{self.name} returned an empty title", raw_text=raw)
        return title

    async def rank(self, content: str, results: Sequence[SearchResult]) -> list[SearchResult]:
        raw = await self._complete(build_ranking_prompt(content, results), json_output=True)
        return parse_ranking_response(raw, list(results))

    async def close(self) -> None:
        return None


class OpenAICompatibleProvider(BaseProvider):
    """Groq and OpenRouter both speak the OpenAI chat-completions protocol."""

    def __init__(
        self,
        provider_id: ProviderID,
        *,
        api_key: str | None,
        model: str,
        timeout_sec: float = 30.0,
        base_url: str | None = None,
        client: Any | None = None,
    ):
        self.provider_id = provider_id
        self.api_key = api_key
        self.model = model
        self.timeout_sec = float(timeout_sec)
        self.base_url = base_url or OPENAI_COMPATIBLE_BASE_URLS.get(provider_id)
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise NonRetryableError(f"{self.name} API key is missing")
            # Retries belong to the retry executor, not the SDK.
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout_sec,
                max_retries=0,
            )
        return self._client

    async def _complete(self, prompt: str, *, json_output: bool, media: MediaInput | None = None) -> str:
        client = self._get_client()
        params: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if json_output:
            params["response_format"] = {"type": "json_object"}

        try:
            response = await client.chat.completions.create(**params)
        except openai.APITimeoutError as e:
            raise RetryableNetworkError(f"{self.name} request timed out") from e
        except openai.APIConnectionError as e:
            raise RetryableNetworkError(f"{self.name} network error: {e}") from e
        except openai.APIStatusError as e:
            raise _error_for_status(self.name, e.status_code, e.message) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise ParseError(f"{self.name} returned no choices") from e
        if not content or not content.strip():
            raise ParseError(f"{self.name} returned an empty response")
        return content

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()


class GeminiProvider(BaseProvider):
    """Google Gemini over its REST `generateContent` endpoint. Media-capable."""

    provider_id = ProviderID.GEMINI
    supports_media = True

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        timeout_sec: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout_sec = float(timeout_sec)
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_sec)
        return self._client

    async def _complete(self, prompt: str, *, json_output: bool, media: MediaInput | None = None) -> str:
        if not self.api_key:
            raise NonRetryableError(f"{self.name} API key is missing")

        parts: list[dict[str, Any]] = [{"text": prompt}]
        if media is not None:
            parts.append({"inline_data": {"mime_type": media.mime_type, "data": media.data}})

        generation_config: dict[str, Any] = {"temperature": 0.1}
        if json_output:
            generation_config["responseMimeType"] = "application/json"

        url = f"{GEMINI_API_BASE_URL}/models/{self.model}:generateContent"
        payload = {"contents": [{"role": "user", "parts": parts}], "generationConfig": generation_config}

        try:
            r = await self._get_client().post(url, params={"key": self.api_key}, json=payload)
        except httpx.TimeoutException as e:
            raise RetryableNetworkError(f"{self.name} request timed out") from e
        except httpx.TransportError as e:
            raise RetryableNetworkError(f"{self.name} network error: {e}") from e

        if r.status_code >= 400:
            raise _error_for_status(self.name, r.status_code, _response_detail(r))

        try:
            data = r.json()
        except ValueError as e:
            raise ParseError(f"{self.name} returned a non-JSON envelope", raw_text=r.text[:500]) from e

        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise NonRetryableError(f"{self.name} blocked the request by safety filters: {block_reason}")

        try:
            text = "".join(p.get("text", "") for p in data["candidates"][0]["content"]["parts"])
        except (KeyError, IndexError, TypeError) as e:
            raise ParseError(f"{self.name} returned no candidates", raw_text=str(data)[:500]) from e
        if not text.strip():
            raise ParseError(f"{self.name} returned an empty response")
        return text

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class ProxyProvider(BaseProvider):
    """
    Backend proxy that holds the provider keys and runs its own provider selection.

    The proxy returns structured JSON, so no free-form parsing happens here
    beyond validating the verdict shape.
    """

    provider_id = ProviderID.PROXY
    supports_media = True

    def __init__(
        self,
        *,
        base_url: str,
        timeout_sec: float = 30.0,
        rank_min_results: int = 3,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = float(timeout_sec)
        self.rank_min_results = int(rank_min_results)
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_sec)
        return self._client

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> Any:
        url = f"{self.base_url}/{endpoint}"
        try:
            r = await self._get_client().post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_sec,
            )
        except httpx.TimeoutException as e:
            raise RetryableNetworkError("AI service request timed out") from e
        except httpx.TransportError as e:
            raise RetryableNetworkError(f"AI Proxy network error: {e}") from e

        if r.status_code >= 400:
            raise _error_for_status(self.name, r.status_code, _response_detail(r))
        try:
            return r.json()
        except ValueError as e:
            raise ParseError("Invalid response from AI service", raw_text=r.text[:500]) from e

    async def verify(self, content: str, search_results: Sequence[SearchResult] = ()) -> ProviderResult:
        data = await self._post(
            "verify",
            {
                "content": content,
                "searchResults": [r.to_dict() for r in search_results],
                "provider": "fallback",
            },
        )
        return coerce_provider_result(data)

    async def verify_media(
        self,
        media: MediaInput,
        additional_context: str = "",
        search_results: Sequence[SearchResult] = (),
    ) -> ProviderResult:
        data = await self._post(
            "verify-media",
            {
                "mediaData": media.data,
                "mimeType": media.mime_type,
                "additionalContext": additional_context or None,
                "searchResults": [r.to_dict() for r in search_results],
            },
        )
        return coerce_provider_result(data)

    async def generate_title(self, text: str) -> str:
        data = await self._post("generate-title", {"content": text})
        title = parse_title_response(str((data or {}).get("title") or "")) if isinstance(data, dict) else ""
        if not title:
            raise ParseError("AI Proxy returned an empty title")
        return title

    async def rank(self, content: str, results: Sequence[SearchResult]) -> list[SearchResult]:
        items = list(results)
        if len(items) <= self.rank_min_results:
            return items
        data = await self._post("rank-results", {"content": content, "results": simplify_for_ranking(items)})
        ids = data.get("rankedIds") if isinstance(data, dict) else None
        if not isinstance(ids, list):
            raise ParseError("Invalid response from AI service: missing rankedIds")
        return map_ranked_ids(ids, items)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
