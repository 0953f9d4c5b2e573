"""
cli.py — Dependency Wiring (Composition Root)
-----------------------------------------------
The one place that reads the environment, builds concrete implementations
and injects them. Everything below it receives its collaborators through
its constructor.

Dependency graph:
                          cli.py  (wires everything)
                            │
                     InsightsService ──────────┐
                  ┌─────────┼──────────┐       ▼
                  ▼         ▼          ▼   PostgresSnapshotSink (optional)
        GitHubRestClient  CachedFetcher  TrendingScraper
                            │
                    InMemoryCacheStore

Usage (installed as the `gitlytics` console script):
  gitlytics insights <username> [--refresh]
  gitlytics recommend <username> [--refresh]
  gitlytics trending [--language L] [--since daily|weekly|monthly]
  gitlytics languages <owner> <repo>
  gitlytics stats <owner> <repo>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

import httpx
import psycopg2

from gitlytics.application.cached_fetch import CachedFetcher
from gitlytics.application.insights_service import InsightsService
from gitlytics.domain.entities import to_json
from gitlytics.domain.errors import InsightsError
from gitlytics.infrastructure.github_client import GitHubRestClient
from gitlytics.infrastructure.memory_cache import InMemoryCacheStore
from gitlytics.infrastructure.postgres_sink import PostgresSnapshotSink
from gitlytics.infrastructure.trending_scraper import SINCE_VALUES, TrendingScraper

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    logging.basicConfig(
        level=os.environ.get("GITLYTICS_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _read_env() -> tuple[str | None, str | None]:
    """Both variables are optional: no token means anonymous rate limits."""
    token  = os.environ.get("GITHUB_TOKEN") or None
    db_url = os.environ.get("DATABASE_URL") or None
    if not token:
        log.warning("GITHUB_TOKEN not set — anonymous requests are limited to 60/hour")
    return token, db_url


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="GitHub account insights")
    sub = parser.add_subparsers(dest="command", required=True)

    insights = sub.add_parser("insights", help="Full insights snapshot for a user")
    insights.add_argument("username")
    insights.add_argument("--refresh", action="store_true", help="Bypass the cache")

    recommend = sub.add_parser("recommend", help="Project ideas and matching trending repos")
    recommend.add_argument("username")
    recommend.add_argument("--refresh", action="store_true", help="Bypass the cache")

    trending = sub.add_parser("trending", help="Scrape github.com/trending")
    trending.add_argument("--language", default="")
    trending.add_argument("--since", default="daily", choices=SINCE_VALUES)

    for name in ("languages", "stats"):
        repo = sub.add_parser(name, help=f"Repository {name}")
        repo.add_argument("owner")
        repo.add_argument("repo")

    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Dependency wiring
# ---------------------------------------------------------------------------

async def build_and_run(args: argparse.Namespace, token: str | None, db_url: str | None) -> dict:
    conn   = psycopg2.connect(db_url) if db_url else None
    client = httpx.AsyncClient(follow_redirects=True)

    try:
        sink = None
        if conn is not None:
            sink = PostgresSnapshotSink(conn=conn)
            sink.ensure_schema()

        service = InsightsService(
            github   = GitHubRestClient(client=client, token=token),
            fetcher  = CachedFetcher(cache=InMemoryCacheStore()),
            trending = TrendingScraper(client=client),
            sink     = sink,
        )

        if args.command == "insights":
            value, last_updated = await service.get_insights(args.username, args.refresh)
        elif args.command == "recommend":
            value, last_updated = await service.get_recommendations(args.username, args.refresh)
        elif args.command == "trending":
            value, last_updated = await service.get_trending(args.language, args.since)
        elif args.command == "languages":
            value, last_updated = await service.get_repository_languages(args.owner, args.repo)
        else:
            value, last_updated = await service.get_repository_stats(args.owner, args.repo)

        return {"data": value, "last_updated": last_updated}

    finally:
        await client.aclose()
        if conn is not None:
            conn.close()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    _configure_logging()
    args = _parse_args(argv)
    token, db_url = _read_env()

    try:
        result = asyncio.run(build_and_run(args, token, db_url))
    except InsightsError as exc:
        log.error("%s", exc)
        return 1

    print(to_json(result, indent=2))
    return 0

