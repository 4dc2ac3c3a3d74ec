# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2025 VerifyNews Contributors
"""
VerifyNews Core Schema Module

Verdicts, claims, search results and persisted verification records.
"""

from verifynews_core.schema.verdict import (
    Claim,
    MediaInput,
    MediaKind,
    ProviderResult,
    SearchResult,
    SelectedArticle,
    Source,
    Veracity,
    VerificationRecord,
    VerificationStatus,
    VerifyOptions,
    media_kind_from_mime,
)

__all__ = [
    "Claim",
    "MediaInput",
    "MediaKind",
    "ProviderResult",
    "SearchResult",
    "SelectedArticle",
    "Source",
    "Veracity",
    "VerificationRecord",
    "VerificationStatus",
    "VerifyOptions",
    "media_kind_from_mime",
]
