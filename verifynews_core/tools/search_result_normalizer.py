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

import re
from urllib.parse import urlparse

from verifynews_core.schema.verdict import SearchResult
from verifynews_core.tools.url_utils import canonical_url_for_dedupe, is_valid_public_http_url

MAX_SNIPPET_CHARS = 1000


def clean_tavily_results(results: list[dict] | None) -> list[SearchResult]:
    cleaned: list[SearchResult] = []
    seen: set[str] = set()

    for obj in (results or []):
        if not isinstance(obj, dict):
            continue
        title = (obj.get("title") or "").strip()
        url = (obj.get("url") or "").strip()
        snippet = (obj.get("content") or "").strip()

        if not is_valid_public_http_url(url):
            continue

        if not title:
            title = urlparse(url).netloc or url

        clean_url = canonical_url_for_dedupe(url)
        if clean_url in seen:
            continue
        seen.add(clean_url)

        snippet = re.sub(r"\s+", " ", snippet).strip()[:MAX_SNIPPET_CHARS]
        cleaned.append(SearchResult(title=title, snippet=snippet, url=url))

    return cleaned

