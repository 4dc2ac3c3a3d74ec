# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
URL Utilities

Small helpers shared across tools. These functions must be side-effect free.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse


def normalize_host(host: str) -> str:
    host = (host or "").strip().lower()
    return host[4:] if host.startswith("www.") else host


def is_absolute_http_url(url: Any) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        u = urlparse(url.strip())
    except ValueError:
        return False
    return u.scheme in ("http", "https") and bool(u.hostname)


def is_valid_public_http_url(url: str) -> bool:
    if not is_absolute_http_url(url):
        return False
    host = normalize_host(urlparse(str(url).strip()).hostname or "")
    return host not in ("127.0.0.1", "localhost")


def canonical_url_for_dedupe(url: str) -> str:
    """
    Canonical URL representation for deduplication (host+path, no query/fragment).
    """
    try:
        u = urlparse(url)
        return normalize_host(u.netloc or "") + (u.path or "").rstrip("/")
    except ValueError:
        return (url or "").strip()


def _source_fields(item: Any) -> tuple[str, str]:
    if isinstance(item, dict):
        url = item.get("url") or item.get("link") or ""
        name = item.get("name") or item.get("title") or ""
        return str(name).strip(), str(url).strip()
    # Already-built Source models
    url = getattr(item, "url", "") or ""
    name = getattr(item, "name", "") or ""
    return str(name).strip(), str(url).strip()


def normalize_sources(raw: Any) -> list[dict[str, str]]:
    """
    Normalize model-supplied sources into `[{name, url}]`.

    - Plain strings that are absolute URLs become `{name: hostname, url}`;
      other strings carry no link and are dropped.
    - Objects keep their name (hostname when empty) and must carry an
      absolute http(s) URL, otherwise they are dropped.

    Idempotent: an already-normalized list comes back unchanged.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, dict)):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return []

    out: list[dict[str, str]] = []
    for item in raw:
        if isinstance(item, str):
            url = item.strip()
            if not is_absolute_http_url(url):
                continue
            out.append({"name": urlparse(url).hostname or url, "url": url})
            continue

        name, url = _source_fields(item)
        if not is_absolute_http_url(url):
            continue
        out.append({"name": name or (urlparse(url).hostname or url), "url": url})
    return out
