# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2025 VerifyNews Contributors
"""
VerifyNews CLI Module

Commands:
- verify "<claim>" [--url URL] [--json]: Verify a claim
- cache stats|clear [--namespace text|media|search]: Inspect or clear caches
- limits: Show rate limiter budgets

Usage:
    python -m verifynews_cli verify "The moon is made of cheese"
    python -m verifynews_cli cache stats --namespace text
"""

from verifynews_cli.commands import main

__all__ = ["main"]
