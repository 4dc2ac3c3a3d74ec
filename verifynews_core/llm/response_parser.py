# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Parsing of free-form model output into verdicts.

Models are asked for a bare JSON object but routinely wrap it in markdown
fences, prepend prose, or get cut off mid-object. The parser isolates the
outermost object, tries a few common truncation repairs, and validates the
result against ProviderResult.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence, TypeVar

from pydantic import ValidationError

from verifynews_core.llm.errors import ParseError
from verifynews_core.schema.verdict import ProviderResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def _strip_trailing_commas(s: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", s)


def _repair_candidates(s: str) -> list[str]:
    body = s.rstrip()
    closed = body.rstrip(",").rstrip() + "}"
    out = [
        _strip_trailing_commas(body),
        body + "}",
        _strip_trailing_commas(closed),
    ]
    # Preserve order, drop duplicates and the unrepaired input.
    seen = {s}
    uniq = []
    for c in out:
        if c not in seen:
            seen.add(c)
            uniq.append(c)
    return uniq


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Isolate and parse the outermost JSON object in `text`.

    Raises ParseError when no object can be recovered.
    """
    cleaned = strip_code_fences(text)
    start = cleaned.find("{")
    if start < 0:
        raise ParseError("Invalid JSON response from AI provider: no object found", raw_text=text)

    end = cleaned.rfind("}")
    candidate = cleaned[start:end + 1] if end > start else cleaned[start:]

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as first_error:
        parsed = None
        for repaired in _repair_candidates(candidate):
            try:
                parsed = json.loads(repaired)
                logger.debug("[Parser] Recovered truncated JSON (%d chars)", len(candidate))
                break
            except json.JSONDecodeError:
                continue
        if parsed is None:
            raise ParseError(f"Invalid JSON response from AI provider: {first_error}", raw_text=text) from first_error

    if not isinstance(parsed, dict):
        raise ParseError("Invalid JSON response from AI provider: expected object", raw_text=text)
    return parsed


def parse_provider_response(text: str) -> ProviderResult:
    """Parse raw model text into a sanitized ProviderResult."""
    data = extract_json_object(text)
    if "veracity" not in data:
        logger.warning("[Parser] Provider response is missing 'veracity': %s", str(text)[:200])
        raise ParseError("Schema validation failed: missing required field 'veracity'", raw_text=text)

    if "correctedInfo" in data and "corrected_info" not in data:
        data["corrected_info"] = data.get("correctedInfo")

    try:
        return ProviderResult.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Schema validation failed: {e.error_count()} error(s)", raw_text=text) from e


def coerce_provider_result(payload: Any) -> ProviderResult:
    """Validate an already-decoded payload (e.g. from the AI proxy)."""
    if isinstance(payload, ProviderResult):
        return payload
    if isinstance(payload, str):
        return parse_provider_response(payload)
    if not isinstance(payload, dict):
        raise ParseError(f"Invalid response from AI service: {type(payload).__name__}")
    return parse_provider_response(json.dumps(payload))


def parse_title_response(text: str) -> str:
    """Strip surrounding quotes and whitespace from a generated title."""
    s = (text or "").strip()
    s = re.sub(r'^"|"$', "", s)
    return s.strip()


def parse_ranking_response(text: str, results: Sequence[T]) -> list[T]:
    """
    Map `{"rankedIds": [...]}` back onto `results`.

    Unknown or duplicate ids are dropped. Raises ParseError on unusable output
    so the caller can fall through to the next provider.
    """
    data = extract_json_object(text)
    ids = data.get("rankedIds")
    if not isinstance(ids, list):
        raise ParseError("Schema validation failed: missing required field 'rankedIds'", raw_text=text)
    return map_ranked_ids(ids, results)


def map_ranked_ids(ids: Sequence[Any], results: Sequence[T]) -> list[T]:
    out: list[T] = []
    used: set[int] = set()
    for raw_id in ids:
        try:
            idx = int(raw_id)
        except (TypeError, ValueError):
            continue
        if 0 <= idx < len(results) and idx not in used:
            used.add(idx)
            out.append(results[idx])
    return out
