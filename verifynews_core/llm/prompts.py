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

import json
from typing import Sequence

from verifynews_core.schema.verdict import SearchResult

_VERDICT_FORMAT = """{
  "veracity": "true" | "false" | "partially-true" | "unverified",
  "confidence": number (0-100),
  "explanation": "string (2-3 sentences)",
  "sources": [{"name": "string", "url": "string"}]
}"""


def _search_context(search_results: Sequence[SearchResult]) -> str:
    if not search_results:
        return "No search results available."
    payload = [r.to_dict() for r in search_results]
    return f"Search Results:\n{json.dumps(payload, indent=2, ensure_ascii=False)}"


def build_verification_prompt(content: str, search_results: Sequence[SearchResult]) -> str:
    return f"""Verify the following news content:
"{content}"

{_search_context(search_results)}

Respond ONLY with a JSON object in this format:
{_VERDICT_FORMAT}"""


def build_media_prompt(media_kind: str, additional_context: str, search_results: Sequence[SearchResult]) -> str:
    context_line = f"Context: {additional_context}" if additional_context else ""
    return f"""You are a professional fact-checker. Analyze this {media_kind} for potential misinformation.
{context_line}
{_search_context(search_results)}

Respond ONLY with a JSON object:
{_VERDICT_FORMAT}"""


def build_title_prompt(text: str) -> str:
    return (
        "Generate a concise, human-readable title (max 6 words) for the following news content or topic. "
        f"Respond ONLY with the title text.\n\nInput: {text}"
    )


def simplify_for_ranking(results: Sequence[SearchResult]) -> list[dict]:
    return [{"id": i, "title": r.title, "snippet": r.snippet} for i, r in enumerate(results)]


def build_ranking_prompt(content: str, results: Sequence[SearchResult]) -> str:
    return f"""Original Content: "{content}"

Search Results:
{json.dumps(simplify_for_ranking(results), indent=2, ensure_ascii=False)}

Rank these search results by relevance to the original content. Return a JSON object with an array of IDs in order of relevance (most relevant first).
Format: {{ "rankedIds": [number] }}"""
