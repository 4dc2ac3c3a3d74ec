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

import asyncio
import logging

import httpx

from verifynews_core.llm.errors import NonRetryableError, RetryableNetworkError
from verifynews_core.schema.verdict import SearchResult
from verifynews_core.tools.search_result_normalizer import clean_tavily_results
from verifynews_core.utils.trace import Trace

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


class TavilySearchClient:
    def __init__(
        self,
        *,
        api_key: str | None,
        timeout_s: float = 12.0,
        concurrency: int = 4,
        search_depth: str = "basic",
        max_results: int = 5,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.search_depth = search_depth
        self.max_results = int(max_results)
        self._sem = asyncio.Semaphore(max(1, min(int(concurrency or 4), 16)))
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=float(timeout_s),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def search(self, query: str) -> list[SearchResult]:
        if not self.api_key:
            raise NonRetryableError("Tavily API key not configured")

        payload = {
            "query": query,
            "search_depth": self.search_depth,
            "include_answer": False,
            "include_raw_content": False,
            "max_results": self.max_results,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        async with self._sem:
            Trace.event("tavily.request", {"url": TAVILY_SEARCH_URL, "payload": payload})
            try:
                r = await self._client.post(TAVILY_SEARCH_URL, json=payload, headers=headers)
            except httpx.TimeoutException as e:
                raise RetryableNetworkError("Tavily search timed out") from e
            except httpx.TransportError as e:
                raise RetryableNetworkError(f"Tavily network error: {e}") from e

            try:
                r.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.debug(
                    "[Tavily] HTTP error %s. Response: %s",
                    e.response.status_code,
                    (e.response.text or "")[:500],
                )
                if e.response.status_code >= 500:
                    raise RetryableNetworkError(f"Tavily API error: {e.response.status_code}") from e
                raise NonRetryableError(f"Tavily API error: {e.response.status_code}") from e

            Trace.event("tavily.response", {"status_code": r.status_code, "text": r.text})
            data = r.json()

        results = clean_tavily_results(data.get("results") if isinstance(data, dict) else None)
        logger.debug("[Tavily] %d results for query (%d chars)", len(results), len(query))
        return results
