# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

from pathlib import Path

import diskcache


def ensure_diskcache(path: Path) -> diskcache.Cache:
    path.mkdir(parents=True, exist_ok=True)
    return diskcache.Cache(str(path))


def string_hash32(s: str) -> int:
    """
    31-multiplier rolling hash truncated to a signed 32-bit int.

    Not cryptographic. Collisions are possible and accepted for cache keys.
    """
    h = 0
    for ch in s:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return h


def make_cache_key(prefix: str, kind: str, content: str) -> str:
    return f"{prefix}:{kind}:{abs(string_hash32(f'{kind}:{content}'))}"


def normalize_cache_content(content: str) -> str:
    """Cache lookups ignore surrounding whitespace and case."""
    return (content or "").strip().lower()


def normalize_dedupe_content(content: str) -> str:
    """In-flight dedupe ignores surrounding whitespace only."""
    return (content or "").strip()
