#!/usr/bin/env python3
"""Curator: feed ingestion, relevance scoring and scheduled-post generation.

This CLI runs the background jobs of the content-curation service: it polls
news sources, scores articles against brand keywords, fills each brand's
posting queue under its subscription quota and purges stale data.

Commands:
    run         Start the job scheduler (feeds, posts, publish, cleanup)
    tick        Run a single job once and print its result
    status      Show configuration and database statistics
    articles    List the best recent articles for a brand profile
    preview     Render post variations for one article
    add-source  Register a feed for a brand profile

Examples:
    python main.py run                     # Long-running scheduler
    python main.py tick feeds              # One ingestion tick
    python main.py tick cleanup            # One retention run
    python main.py articles --profile p1   # Top articles for a profile
    python main.py preview --article a1 --platform linkedin

Environment:
    OPENAI_API_KEY: Enables AI-written posts (templates otherwise)
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys
import uuid

from config import Config
from database import Database
from observability.logging import setup_logging

JOB_NAMES = ("feeds", "posts", "publish", "cleanup")


def build_scheduler(config: Config, db: Database):
    """Register every periodic job against one store.

    The publish job exists only when PUBLISH_WEBHOOK_URL is set.
    """
    from pipeline import FeedScheduler
    from post_scheduler import ScheduledPostGenerator
    from publishing import WebhookPublisher, publish_due_posts
    from retention import RetentionJanitor
    from scheduler import JobScheduler

    feeds = FeedScheduler.from_config(config, db)
    posts = ScheduledPostGenerator.from_config(config, db)
    janitor = RetentionJanitor(db)

    async def cleanup():
        return janitor.run()

    scheduler = JobScheduler(poll_seconds=config.scheduler_poll_seconds)
    scheduler.add_job("feeds", feeds.tick, interval_seconds=config.feed_interval_seconds, run_on_start=True)
    scheduler.add_job("posts", posts.tick, interval_seconds=config.post_interval_seconds)
    scheduler.add_job("cleanup", cleanup, daily_hour=config.cleanup_hour)

    if config.publish_webhook_url:
        publisher = WebhookPublisher(config.publish_webhook_url)

        async def publish():
            return await publish_due_posts(db, publisher)

        scheduler.add_job("publish", publish, interval_seconds=config.publish_interval_seconds)

    return scheduler


def _setup_tracing(config: Config) -> None:
    if config.enable_logfire:
        from observability.tracing import setup_tracing
        setup_tracing(enabled=True, service_name="curator", token=config.logfire_token)


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Start the scheduler and run until interrupted.

    Returns:
        Exit code (0 for success, 130 on Ctrl+C)
    """
    logger = logging.getLogger(__name__)
    _setup_tracing(config)

    with Database(config.db_path) as db:
        scheduler = build_scheduler(config, db)
        try:
            asyncio.run(scheduler.run_forever())
        except KeyboardInterrupt:
            logger.info("Stopped by user (Ctrl+C)")
            return 130
    return 0


def cmd_tick(args: argparse.Namespace, config: Config) -> int:
    """Run one job immediately and print its result as JSON."""
    _setup_tracing(config)

    with Database(config.db_path) as db:
        scheduler = build_scheduler(config, db)
        if args.job not in scheduler.jobs:
            print(f"Job '{args.job}' is not enabled (set PUBLISH_WEBHOOK_URL for publish)", file=sys.stderr)
            return 1

        result = asyncio.run(scheduler.trigger(args.job))
        job = scheduler.get(args.job)

    if job.last_error:
        print(f"Job failed: {job.last_error}", file=sys.stderr)
        return 1
    print(json.dumps(result.to_dict() if hasattr(result, "to_dict") else result, indent=2, default=str))
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration, database statistics and feed sources."""
    with Database(config.db_path) as db:
        db_stats = db.stats()
        sources = db.list_sources(args.profile)

    status = {
        "config": {
            "feed_batch_size": config.feed_batch_size,
            "feed_refresh_minutes": config.feed_refresh_minutes,
            "min_ingest_score": config.min_ingest_score,
            "min_generation_score": config.min_generation_score,
            "posting_hours": list(config.posting_hours),
            "content_generator": config.content_generator,
            "ai_enabled": config.ai_enabled,
            "content_model": config.content_model,
            "publish_enabled": bool(config.publish_webhook_url),
            "intervals": {
                "feeds": config.feed_interval_seconds,
                "posts": config.post_interval_seconds,
                "publish": config.publish_interval_seconds,
                "cleanup_hour_utc": config.cleanup_hour,
            },
            "enable_logfire": config.enable_logfire,
        },
        "database": {
            "path": str(config.db_path),
            **db_stats,
        },
        "sources": [
            {
                "id": s.id,
                "name": s.name,
                "active": s.is_active,
                "reliability": round(s.reliability, 2),
                "last_checked": s.last_checked.isoformat() if s.last_checked else None,
            }
            for s in sources
        ],
    }

    print(json.dumps(status, indent=2))
    return 0


def cmd_articles(args: argparse.Namespace, config: Config) -> int:
    """List the best recent articles of a brand profile."""
    with Database(config.db_path) as db:
        if db.get_profile(args.profile) is None:
            print(f"Profile not found: {args.profile}", file=sys.stderr)
            return 1
        articles = db.latest_articles(args.profile, min_score=args.min_score, limit=args.limit)

    if not articles:
        print(f"No articles scoring >= {args.min_score} for profile {args.profile}.")
        return 0

    print(f"\n=== Top articles for {args.profile} ===\n")
    for article in articles:
        print(f"📰 {article.title}")
        print(f"   Score: {article.relevance_score:.2f}   Source: {article.source_name or article.source_id}")
        print(f"   Published: {article.published_at.strftime('%Y-%m-%d %H:%M')}")
        print(f"   URL: {article.url}")
        if article.summary:
            summary = article.summary
            if len(summary) > 200:
                summary = summary[:200] + "..."
            print(f"   Summary: {summary}")
        print()
    return 0


def cmd_preview(args: argparse.Namespace, config: Config) -> int:
    """Render post variations for an article without storing anything."""
    from agents import create_generator, generate_variations
    from models.profile import Platform

    with Database(config.db_path) as db:
        article = db.get_article(args.article)
        if article is None:
            print(f"Article not found: {args.article}", file=sys.stderr)
            return 1
        source = db.get_source(article.source_id)
        profile = db.get_profile(source.brand_profile_id) if source else None
        if profile is None:
            print(f"No brand profile for article {args.article}", file=sys.stderr)
            return 1

    generator = create_generator(config)
    variations = asyncio.run(
        generate_variations(generator, article, profile, Platform(args.platform), count=args.count)
    )

    for i, content in enumerate(variations, start=1):
        print(f"--- Variation {i} ({content.platform.value}, {len(content.text)} chars) ---")
        print(content.text)
        if content.hashtags:
            print(" ".join(content.hashtags))
        print()
    return 0


def cmd_add_source(args: argparse.Namespace, config: Config) -> int:
    """Register a new feed for a brand profile."""
    from models.source import NewsSource, SourceType

    with Database(config.db_path) as db:
        if db.get_profile(args.profile) is None:
            print(f"Profile not found: {args.profile}", file=sys.stderr)
            return 1
        source = db.create_source(
            NewsSource(
                id=uuid.uuid4().hex,
                brand_profile_id=args.profile,
                name=args.name or args.url,
                url=args.url,
                type=SourceType(args.type),
            )
        )

    print(json.dumps(source.model_dump(mode="json"), indent=2))
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Curator: feed ingestion and scheduled-post generation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Start the job scheduler")

    tick_parser = subparsers.add_parser("tick", help="Run one job once")
    tick_parser.add_argument("job", choices=JOB_NAMES, help="Job to run")

    status_parser = subparsers.add_parser("status", help="Show configuration and statistics")
    status_parser.add_argument("--profile", default=None, help="Only list sources of this brand profile")

    articles_parser = subparsers.add_parser("articles", help="Show top articles for a profile")
    articles_parser.add_argument("--profile", required=True, help="Brand profile id")
    articles_parser.add_argument(
        "--min-score",
        type=float,
        default=0.3,
        help="Minimum relevance score (default: 0.3)",
    )
    articles_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum articles to show (default: 20)",
    )

    preview_parser = subparsers.add_parser("preview", help="Preview generated posts for an article")
    preview_parser.add_argument("--article", required=True, help="Article id")
    preview_parser.add_argument(
        "--platform",
        choices=["twitter", "linkedin", "facebook"],
        default="twitter",
        help="Target platform (default: twitter)",
    )
    preview_parser.add_argument(
        "--count",
        type=int,
        default=3,
        help="Number of variations (default: 3)",
    )

    source_parser = subparsers.add_parser("add-source", help="Add a feed to a brand profile")
    source_parser.add_argument("--profile", required=True, help="Brand profile id")
    source_parser.add_argument("--url", required=True, help="Feed URL")
    source_parser.add_argument("--name", default="", help="Display name")
    source_parser.add_argument(
        "--type",
        choices=["rss", "website", "social"],
        default="rss",
        help="Source type (default: rss)",
    )

    args = parser.parse_args()

    config = Config.load()
    setup_logging(config, verbose=args.verbose)

    if args.command in ("run", "tick", "preview"):
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    commands = {
        "run": cmd_run,
        "tick": cmd_tick,
        "status": cmd_status,
        "articles": cmd_articles,
        "preview": cmd_preview,
        "add-source": cmd_add_source,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except KeyboardInterrupt:
            return 130
        except Exception as e:
            logging.getLogger(__name__).error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
