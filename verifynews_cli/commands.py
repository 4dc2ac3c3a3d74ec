# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
VerifyNews CLI Commands

Commands:
- verify: Verify one claim and print the verdict
- cache stats: Show entry counts and storage per cache namespace
- cache clear: Drop cached entries
- limits: Show the configured rate limiter budgets
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import NoReturn

from verifynews_core.config import VerifyNewsConfig
from verifynews_core.schema.verdict import Claim, ProviderResult, SelectedArticle, VerifyOptions

CACHE_NAMESPACES = ("text", "media", "search")

_VERACITY_MARKS = {
    "true": "✓",
    "false": "✗",
    "partially-true": "~",
    "unverified": "?",
}


def _print_verdict(result: ProviderResult) -> None:
    mark = _VERACITY_MARKS.get(result.veracity.value, "?")
    print(f"{mark} {result.veracity.value.upper()} ({result.confidence}% confidence)")
    if result.provider:
        print(f"  Provider: {result.provider}")
    print(f"  {result.explanation}")
    if result.corrected_info:
        print(f"  Correction: {result.corrected_info}")
    if result.sources:
        print("  Sources:")
        for s in result.sources:
            print(f"    - {s.name}: {s.url}")


async def _run_verify(args: argparse.Namespace, config: VerifyNewsConfig) -> ProviderResult:
    from verifynews_core.engine import build_orchestrator

    orchestrator = build_orchestrator(config)
    article = SelectedArticle(url=args.url, title=args.title or "") if args.url else None
    options = VerifyOptions(query=args.claim, article=article, user_id=args.user)
    try:
        return await orchestrator.verify(Claim(text=args.claim), options)
    finally:
        await orchestrator.close()


def cmd_verify(args: argparse.Namespace) -> int:
    """Verify a claim."""
    config = VerifyNewsConfig.from_env()
    result = asyncio.run(_run_verify(args, config))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_verdict(result)
    return 0


def _selected_caches(args: argparse.Namespace, config: VerifyNewsConfig):
    from verifynews_core.verification.cache_store import CacheRegistry

    registry = CacheRegistry.from_config(config.runtime.cache, cache_dir=config.cache_dir)
    return [(name, store) for name, store in registry.items() if args.namespace in (None, name)]


def cmd_cache_stats(args: argparse.Namespace) -> int:
    """Show cache statistics."""
    config = VerifyNewsConfig.from_env()
    if not config.cache_dir:
        print("Cache is in-memory (VERIFYNEWS_CACHE_DIR not set); nothing persisted.", file=sys.stderr)

    rows = {name: store.get_stats().to_dict() for name, store in _selected_caches(args, config)}
    if args.json:
        print(json.dumps(rows, indent=2))
        return 0

    for name, stats in rows.items():
        print(f"{name:<8} entries={stats['entry_count']:<5} size={stats['storage_used']}")
    return 0


def cmd_cache_clear(args: argparse.Namespace) -> int:
    """Clear cached entries."""
    config = VerifyNewsConfig.from_env()
    for name, store in _selected_caches(args, config):
        store.clear()
        print(f"✓ Cleared {name} cache ({store.namespace})")
    return 0


def cmd_limits(args: argparse.Namespace) -> int:
    """Show rate limiter budgets."""
    from verifynews_core.verification.rate_limiter import RateLimiterSet

    config = VerifyNewsConfig.from_env()
    limiters = RateLimiterSet.from_config(config.runtime.rate_limits)

    for name, limiter in limiters.items():
        status = limiter.get_status()
        window_s = limiter.config.window_ms / 1000
        print(
            f"{name:<13} {limiter.config.max_requests} per {window_s:g}s  "
            f"remaining={status.remaining} limited={status.is_limited}"
        )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the VerifyNews CLI."""
    parser = argparse.ArgumentParser(
        prog="verifynews",
        description="VerifyNews claim verification",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    verify_parser = subparsers.add_parser("verify", help="Verify a news claim")
    verify_parser.add_argument("claim", help="Claim text to verify")
    verify_parser.add_argument("--url", help="URL of the article the claim comes from")
    verify_parser.add_argument("--title", help="Title of that article")
    verify_parser.add_argument("--user", help="User id to record history for")
    verify_parser.add_argument("--json", action="store_true", help="Print the verdict as JSON")
    verify_parser.set_defaults(func=cmd_verify)

    cache_parser = subparsers.add_parser("cache", help="Inspect or clear the verification cache")
    cache_sub = cache_parser.add_subparsers(dest="cache_command", required=True)

    stats_parser = cache_sub.add_parser("stats", help="Show cache statistics")
    stats_parser.add_argument("--namespace", choices=CACHE_NAMESPACES, help="Limit to one namespace")
    stats_parser.add_argument("--json", action="store_true", help="Print statistics as JSON")
    stats_parser.set_defaults(func=cmd_cache_stats)

    clear_parser = cache_sub.add_parser("clear", help="Clear cached entries")
    clear_parser.add_argument("--namespace", choices=CACHE_NAMESPACES, help="Limit to one namespace")
    clear_parser.set_defaults(func=cmd_cache_clear)

    limits_parser = subparsers.add_parser("limits", help="Show rate limiter budgets")
    limits_parser.set_defaults(func=cmd_limits)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the VerifyNews CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
