# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2025 VerifyNews Contributors
"""
Verdict and Request Pydantic Models

ProviderResult is the OUTPUT of every provider call and of the orchestrator.
The remaining models describe what a caller hands to the orchestrator and
what gets persisted afterwards.

Key Design Principles:
1. A verdict is always renderable: confidence is clamped, sources is a list.
2. Unknown veracity labels degrade to "unverified" instead of failing.
3. Sources carry an absolute http(s) URL or are dropped.
"""

from __future__ import annotations

import base64
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from verifynews_core.schema.serialization import SchemaModel
from verifynews_core.tools.url_utils import normalize_sources


class Veracity(str, Enum):
    """Verdict label for a claim."""
    TRUE = "true"
    FALSE = "false"
    PARTIALLY_TRUE = "partially-true"
    UNVERIFIED = "unverified"


class VerificationStatus(str, Enum):
    """Lifecycle of one verification request as seen by the caller."""
    IDLE = "idle"
    SEARCHING = "searching"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    ERROR = "error"


class MediaKind(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    TEXT = "text"


def media_kind_from_mime(mime_type: str) -> MediaKind:
    mt = (mime_type or "").strip().lower()
    if mt.startswith("image/"):
        return MediaKind.IMAGE
    if mt.startswith("audio/"):
        return MediaKind.AUDIO
    if mt.startswith("video/"):
        return MediaKind.VIDEO
    return MediaKind.TEXT


def clamp_confidence(value: Any) -> int:
    """Coerce a model-supplied confidence into an int in [0, 100]. Never raises."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(v):
        return 0
    if v < 0:
        return 0
    if v > 100:
        return 100
    return int(round(v))


def normalize_veracity(value: Any) -> Veracity:
    if isinstance(value, Veracity):
        return value
    s = str(value or "").strip().lower().replace("_", "-").replace(" ", "-")
    try:
        return Veracity(s)
    except ValueError:
        return Veracity.UNVERIFIED


class Source(SchemaModel):
    name: str
    url: str


class ProviderResult(SchemaModel):
    """
    Structured outcome of verifying one claim.

    `provider` names the backend that answered; it is informational only
    and is absent on degraded results.
    """

    veracity: Veracity = Veracity.UNVERIFIED
    confidence: int = Field(default=0, ge=0, le=100)
    explanation: str = ""
    sources: list[Source] = Field(default_factory=list)
    corrected_info: Optional[str] = None
    provider: Optional[str] = None

    @field_validator("veracity", mode="before")
    @classmethod
    def _veracity(cls, v: Any) -> Veracity:
        return normalize_veracity(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> int:
        return clamp_confidence(v)

    @field_validator("explanation", mode="before")
    @classmethod
    def _explanation(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("sources", mode="before")
    @classmethod
    def _sources(cls, v: Any) -> list[dict[str, str]]:
        return normalize_sources(v)

    def with_leading_source(self, name: str, url: str) -> "ProviderResult":
        """Copy with `{name, url}` prepended unless that URL is already cited."""
        if any(s.url == url for s in self.sources):
            return self.model_copy(deep=True)
        out = self.model_copy(deep=True)
        out.sources.insert(0, Source(name=name, url=url))
        return out


class SearchResult(SchemaModel):
    title: str = ""
    snippet: str = ""
    url: str = ""


class SelectedArticle(SchemaModel):
    """An article the user picked from search results before verifying."""
    title: str = ""
    url: str
    snippet: str = ""


class MediaInput(SchemaModel):
    """Uploaded media. `data` is the base64 payload without a data-URL prefix."""

    data: str
    mime_type: str

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str) -> "MediaInput":
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type)

    @field_validator("data", mode="before")
    @classmethod
    def _strip_data_url(cls, v: Any) -> str:
        s = v.decode("ascii") if isinstance(v, bytes) else str(v or "")
        if s.startswith("data:") and "," in s:
            s = s.split(",", 1)[1]
        return s

    @property
    def kind(self) -> MediaKind:
        return media_kind_from_mime(self.mime_type)


class Claim(SchemaModel):
    """What the user submitted: text, a URL, media, or text plus media."""

    text: str = ""
    url: Optional[str] = None
    media: Optional[MediaInput] = None

    def content(self) -> str:
        """Text the providers judge; a bare URL stands in for missing text."""
        return (self.text or "").strip() or (self.url or "").strip()

    def is_empty(self) -> bool:
        return not self.content() and self.media is None


class VerifyOptions(SchemaModel):
    query: str = ""
    article: Optional[SelectedArticle] = None
    user_id: Optional[str] = None
    slug: Optional[str] = None
    title: Optional[str] = None


class VerificationRecord(SchemaModel):
    """One persisted verification, written to history and the public collection."""

    slug: str
    title: str = ""
    query: str = ""
    content: str = ""
    result: ProviderResult
    user_id: str
    article: Optional[SelectedArticle] = None
    media_mime_type: Optional[str] = None
    cached: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
