from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from gitlytics.domain.entities import (
    EPOCH,
    Event,
    FetchResult,
    InsightsSnapshot,
    ProjectIdea,
    Recommendations,
    RepoStats,
    Repository,
    TrendingRepo,
    UserProfile,
)
from gitlytics.domain.errors import (
    GitHubRateLimitError,
    InsightsError,
    NotFoundError,
    RateLimitedError,
    UserNotFoundError,
)
from gitlytics.domain.interfaces import IGitHubFetcher, ISnapshotSink, ITrendingSource
from . import analytics
from .bounded import BoundedExecutor
from .cached_fetch import CachedFetcher
from .pagination import PAGE_CONCURRENCY, PageAggregator
from .skill_domain import infer_domain

log = logging.getLogger(__name__)

USER_TTL      = 3600
REPOS_TTL     = 1800
LANGUAGES_TTL = 1800
EVENTS_TTL    = 1800
STATS_TTL     = 1800
TRENDING_TTL  = 1800

REPO_PAGES = (1, 2, 3)
PER_PAGE   = 100

LANGUAGE_CONCURRENCY = 5
TRENDING_CONCURRENCY = 4

TOPICS_LIMIT     = 20
DOMAIN_TOPICS    = 10
TOP_REPOS        = 3
RECOMMEND_LIMIT  = 10
TRENDING_FEEDS   = ("", "javascript", "python", "typescript")


def reconcile(*timestamps: datetime) -> datetime:
    """Newest of the given timestamps; EPOCH if there are none."""
    return max(timestamps, default=EPOCH)


def iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


class InsightsService:
    """
    The top-level use cases: "what does this GitHub account look like now".

    Receives every dependency via constructor injection. Each public method
    returns (value, last_updated) where last_updated is an ISO-8601 string,
    the newest timestamp among the fetches that actually succeeded.

    Only a failed profile fetch is fatal; every other partial failure
    degrades the snapshot instead (missing languages count as zero bytes,
    missing events give empty time profiles).
    """

    def __init__(
        self,
        github: IGitHubFetcher,
        fetcher: CachedFetcher,
        trending: ITrendingSource | None = None,
        sink: ISnapshotSink | None = None,
    ) -> None:
        self._github = github
        self._fetcher = fetcher
        self._trending = trending
        self._sink = sink
        self._pages = PageAggregator(fetcher, BoundedExecutor(PAGE_CONCURRENCY))
        self._language_pool = BoundedExecutor(LANGUAGE_CONCURRENCY)
        self._trending_pool = BoundedExecutor(TRENDING_CONCURRENCY)

    # -- building blocks -------------------------------------------------

    async def _user(self, username: str, force_refresh: bool) -> FetchResult[UserProfile]:
        return await self._fetcher.fetch(
            f"user:{username}",
            lambda: self._github.fetch_user(username),
            USER_TTL,
            force_refresh,
        )

    async def _repos(self, username: str, force_refresh: bool) -> tuple[list[Repository], datetime]:
        return await self._pages.fetch_all_pages(
            f"repos:{username}",
            lambda page: self._github.fetch_repos_page(username, page, PER_PAGE),
            REPO_PAGES,
            REPOS_TTL,
            force_refresh,
        )

    async def _languages(self, owner: str, repo: str, force_refresh: bool) -> FetchResult[dict[str, int]]:
        return await self._fetcher.fetch(
            f"lang:{owner}/{repo}",
            lambda: self._github.fetch_repo_languages(owner, repo),
            LANGUAGES_TTL,
            force_refresh,
        )

    async def _events(self, username: str, force_refresh: bool) -> FetchResult[list[Event]]:
        return await self._fetcher.fetch(
            f"events:{username}",
            lambda: self._github.fetch_user_events(username, PER_PAGE),
            EVENTS_TTL,
            force_refresh,
        )

    async def _languages_for(
        self, repos: list[Repository], force_refresh: bool,
    ) -> tuple[dict[str, dict[str, int]], list[datetime]]:
        results = await self._language_pool.run([
            (lambda r=r: self._languages(r.owner_login, r.name, force_refresh))
            for r in repos
        ])
        by_repo: dict[str, dict[str, int]] = {}
        stamps: list[datetime] = []
        # results line up with repos by index
        for repo, result in zip(repos, results):
            if result.ok:
                by_repo[repo.full_name] = result.value
                stamps.append(result.fetched_at)
            else:
                by_repo[repo.full_name] = {}
        return by_repo, stamps

    @staticmethod
    def _require_user(username: str, result: FetchResult[UserProfile]) -> UserProfile:
        if result.ok:
            return result.value
        error = result.error
        if isinstance(error, NotFoundError):
            raise UserNotFoundError(username) from error
        if isinstance(error, RateLimitedError):
            raise GitHubRateLimitError() from error
        raise InsightsError(f"Failed to fetch GitHub profile for '{username}': {error}") from error

    @staticmethod
    def _normalize(username: str) -> str:
        username = (username or "").strip()
        if not username:
            raise ValueError("username is required")
        return username.lower()

    # -- use cases -------------------------------------------------------

    async def get_insights(self, username: str, force_refresh: bool = False) -> tuple[InsightsSnapshot, str]:
        username = self._normalize(username)
        log.info("Insights requested | user=%s | refresh=%s", username, force_refresh)

        user_result, (repos, repos_updated) = await asyncio.gather(
            self._user(username, force_refresh),
            self._repos(username, force_refresh),
        )
        user = self._require_user(username, user_result)

        (languages_by_repo, language_stamps), events_result = await asyncio.gather(
            self._languages_for(repos, force_refresh),
            self._events(username, force_refresh),
        )
        events = events_result.value if events_result.ok else []

        language_agg = analytics.aggregate_languages(repos, languages_by_repo)
        topics = analytics.topics_frequency(repos)
        snapshot = InsightsSnapshot(
            user         = user,
            repos_count  = len(repos),
            languages    = language_agg,
            topics       = topics[:TOPICS_LIMIT],
            top_starred  = analytics.most_starred(repos, TOP_REPOS),
            top_active   = analytics.most_active(repos, TOP_REPOS),
            commit_times = analytics.commit_time_distribution(events),
            weekly       = analytics.weekly_activity(events),
            domain       = infer_domain(language_agg.percentages, [t for t, _ in topics[:DOMAIN_TOPICS]]),
        )

        stamps = [user_result.fetched_at, *language_stamps]
        if repos_updated != EPOCH:
            stamps.append(repos_updated)
        if events_result.ok:
            stamps.append(events_result.fetched_at)
        last_updated = iso(reconcile(*stamps))

        log.info("Insights ready | user=%s | repos=%d | events=%d | domain=%s",
                 username, len(repos), len(events), snapshot.domain.domain)

        if self._sink is not None:
            self._sink.save(snapshot, last_updated)
        return snapshot, last_updated

    async def get_repository_languages(
        self, owner: str, repo: str, force_refresh: bool = False,
    ) -> tuple[dict[str, int], str]:
        result = await self._languages(owner, repo, force_refresh)
        if not result.ok:
            return {}, iso(EPOCH)
        return result.value, iso(result.fetched_at)

    async def get_repository_stats(
        self, owner: str, repo: str, force_refresh: bool = False,
    ) -> tuple[RepoStats, str]:
        def _part(kind: str):
            return self._fetcher.fetch(
                f"{kind}:{owner}/{repo}",
                lambda: self._github.fetch_repo_activity(owner, repo, kind),
                STATS_TTL,
                force_refresh,
            )

        commits, issues, pulls = await asyncio.gather(_part("commits"), _part("issues"), _part("pulls"))
        parts = (commits, issues, pulls)
        stats = RepoStats(*(tuple(p.value) if p.ok else () for p in parts))
        last_updated = reconcile(*(p.fetched_at for p in parts if p.ok))
        return stats, iso(last_updated)

    async def _trending_feed(self, language: str, since: str, force_refresh: bool) -> FetchResult[list[TrendingRepo]]:
        if self._trending is None:
            raise InsightsError("No trending source configured")
        language = (language or "").strip().lower()
        return await self._fetcher.fetch(
            f"trending:{language}:{since}",
            lambda: self._trending.fetch_trending(language, since),
            TRENDING_TTL,
            force_refresh,
        )

    async def get_trending(
        self, language: str = "", since: str = "daily", force_refresh: bool = False,
    ) -> tuple[list[TrendingRepo], str]:
        result = await self._trending_feed(language, since, force_refresh)
        if not result.ok:
            return [], iso(EPOCH)
        return result.value, iso(result.fetched_at)

    async def get_recommendations(
        self, username: str, force_refresh: bool = False,
    ) -> tuple[Recommendations, str]:
        username = self._normalize(username)

        user_result, (repos, repos_updated) = await asyncio.gather(
            self._user(username, force_refresh),
            self._repos(username, force_refresh),
        )
        user = self._require_user(username, user_result)
        topics = [t for t, _ in analytics.topics_frequency(repos)[:DOMAIN_TOPICS]]

        feeds: list[FetchResult[list[TrendingRepo]]] = []
        if self._trending is not None:
            feeds = await self._trending_pool.run([
                (lambda lang=lang: self._trending_feed(lang, "daily", force_refresh))
                for lang in TRENDING_FEEDS
            ])
        trending = [item for feed in feeds if feed.ok for item in feed.value]

        def _matches(item: TrendingRepo) -> bool:
            haystack = f"{item.description or ''} {item.language or ''}".lower()
            return any(t.lower() in haystack for t in topics)

        recommendations = Recommendations(
            login            = user.login,
            avatar_url       = user.avatar_url,
            trending_matches = [item for item in trending if _matches(item)][:RECOMMEND_LIMIT],
            personal_ideas   = [
                ProjectIdea(
                    title       = f"Build a {t} starter or tool",
                    description = f"Create a project exploring {t} that showcases your expertise.",
                    tag         = t,
                )
                for t in topics
            ][:RECOMMEND_LIMIT],
            trending_sample  = trending[:RECOMMEND_LIMIT],
        )

        stamps = [user_result.fetched_at]
        if repos_updated != EPOCH:
            stamps.append(repos_updated)
        stamps += [feed.fetched_at for feed in feeds if feed.ok]
        return recommendations, iso(reconcile(*stamps))
