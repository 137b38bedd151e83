#!/usr/bin/env python3
"""
AIByte ingest pipeline

Entry point for the feed pipeline.
Fetches AI news feeds, summarizes new articles, publishes the JSON feed.

Usage:
    python -m aibyte.main                      # Ingest (default command)
    python -m aibyte.main ingest --refresh-stale
    python -m aibyte.main pattern              # Weekly synthesis ("The Pattern")
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from .config.settings import Settings
from .digest.pattern import PatternGenerator
from .output.formatter import OutputFormatter
from .pipeline import IngestPipeline
from .storage.cache import CacheStore
from .utils.llm_client import LLMClient

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="AIByte AI-news ingest pipeline")

    parser.add_argument(
        "command",
        nargs="?",
        choices=["ingest", "pattern"],
        default="ingest",
        help="ingest: refresh the article feed; pattern: build the weekly synthesis",
    )

    parser.add_argument("--cache-dir", help="Article cache directory (default: data/cache)")

    parser.add_argument("--output-dir", help="Public data directory (default: public/data)")

    parser.add_argument(
        "--items-per-source",
        type=int,
        help="Newest entries to consider per source (4-8)",
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        dest="max_concurrency",
        help="Articles processed in parallel",
    )

    parser.add_argument(
        "--window-days",
        type=int,
        help="Recency window for items.json in days",
    )

    parser.add_argument(
        "--refresh-stale",
        action="store_true",
        default=None,
        help="Re-summarize cached articles produced by an older prompt version",
    )

    parser.add_argument("--model", dest="llm_model", help="LiteLLM model id")

    parser.add_argument("--log-level", help="Logging level (default: INFO)")

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Settings from env/.env, with any CLI flags taking precedence."""
    overrides = {
        key: value
        for key, value in vars(args).items()
        if key != "command" and value is not None
    }
    return Settings(**overrides)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)


async def run_ingest(settings: Settings, llm: LLMClient) -> int:
    """Run the ingest pipeline and print a summary."""
    pipeline = IngestPipeline.from_settings(settings, llm)
    print(f"Sources: {len(pipeline.sources)}  |  Cache: {settings.cache_dir}  |  Output: {settings.output_dir}")

    result = await pipeline.run()
    stats = result.stats

    print(f"\n✅ Ingest complete in {stats.duration_seconds:.1f}s")
    print(f"   Sources: {stats.sources_ok} ok, {stats.sources_failed} failed")
    print(f"   New articles: {stats.new_articles} ({stats.failed_items} failed, {stats.reused} already cached)")
    if settings.refresh_stale:
        print(f"   Refreshed: {stats.refreshed}")
    print(f"   Total in cache: {stats.total_in_cache}  |  In {settings.window_days}-day window: {stats.window_articles}")
    if stats.llm_calls:
        print(f"   LLM: {stats.llm_calls} calls, ${stats.llm_cost_usd:.4f}")
    return 0


async def run_pattern(settings: Settings, llm: LLMClient) -> int:
    """Generate The Pattern from the cache and write it to the output directory."""
    articles = list(CacheStore(settings.cache_dir).load_all())
    generator = PatternGenerator(
        llm,
        days=settings.pattern_days,
        min_articles=settings.pattern_min_articles,
    )

    result = await generator.generate(articles)
    if result is None:
        print("⚠️  Not enough articles for meaningful pattern analysis")
        return 0

    formatter = OutputFormatter(settings.output_dir)
    formatter.ensure_dir()
    path = formatter.write_pattern(result.pattern, archive=not result.fallback)

    if result.fallback:
        print(f"⚠️  Pattern generation failed, wrote fallback to {path}")
    else:
        print(f"✅ The Pattern: \"{result.pattern.get('headline')}\"")
        print(f"   Saved to: {path}")
    return 0


async def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        settings = build_settings(args)
    except ValidationError as e:
        print(f"❌ Invalid configuration:\n{e}")
        return 1

    configure_logging(settings.log_level)

    # Validate API key
    if not settings.openai_api_key:
        print("❌ OPENAI_API_KEY not set in environment or .env file")
        return 1

    llm = LLMClient(
        model=settings.llm_model,
        api_key=settings.openai_api_key,
        timeout=settings.llm_timeout_seconds,
        max_attempts=settings.llm_max_attempts,
    )

    print("=" * 60)
    print(f"🚀 AIByte {args.command}")
    print("=" * 60)
    print(f"Model: {settings.llm_model}")

    try:
        if args.command == "pattern":
            return await run_pattern(settings, llm)
        return await run_ingest(settings, llm)
    except Exception:
        logger.exception("Unrecoverable error, aborting run")
        return 1


def cli() -> None:
    """CLI entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
