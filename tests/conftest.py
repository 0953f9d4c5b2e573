"""Shared fixtures: a controllable clock and an in-memory GitHub fake."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gitlytics.application.cached_fetch import CachedFetcher
from gitlytics.domain.entities import Event, Repository, TrendingRepo, UserProfile
from gitlytics.domain.errors import FetchError, NotFoundError
from gitlytics.domain.interfaces import IGitHubFetcher, ITrendingSource
from gitlytics.infrastructure.memory_cache import InMemoryCacheStore


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_repo(name: str, stars: int = 0, forks: int = 0, issues: int = 0,
              topics: tuple[str, ...] = (), owner: str = "octo") -> Repository:
    return Repository(
        owner_login       = owner,
        name              = name,
        description       = None,
        language          = None,
        star_count        = stars,
        fork_count        = forks,
        open_issues_count = issues,
        topics            = topics,
        pushed_at         = None,
    )


def make_event(event_type: str, iso_ts: str) -> Event:
    return Event(event_type=event_type, created_at=datetime.fromisoformat(iso_ts))


class FakeGitHub(IGitHubFetcher):
    """
    Serves canned data and records every call. Any key listed in
    `failures` raises the mapped FetchError instead.
    """

    def __init__(self) -> None:
        self.user = UserProfile(
            login="octo", name="Octo Cat", avatar_url="https://avatars/octo", html_url=None,
            bio=None, public_repos=3, followers=10, following=1, created_at=None,
        )
        self.pages: dict[int, list[Repository]] = {1: [], 2: [], 3: []}
        self.languages: dict[str, dict[str, int]] = {}
        self.events: list[Event] = []
        self.activity: dict[str, list[dict]] = {"commits": [], "issues": [], "pulls": []}
        self.failures: dict[str, FetchError] = {}
        self.calls: list[str] = []

    def _maybe_fail(self, key: str) -> None:
        self.calls.append(key)
        if key in self.failures:
            raise self.failures[key]

    async def fetch_user(self, username: str) -> UserProfile:
        self._maybe_fail(f"user:{username}")
        return self.user

    async def fetch_repos_page(self, username: str, page: int, per_page: int = 100) -> list[Repository]:
        self._maybe_fail(f"repos:{username}:{page}")
        return list(self.pages.get(page, []))

    async def fetch_repo_languages(self, owner: str, repo: str) -> dict[str, int]:
        self._maybe_fail(f"lang:{owner}/{repo}")
        if f"{owner}/{repo}" not in self.languages:
            raise NotFoundError("no such repo", 404)
        return dict(self.languages[f"{owner}/{repo}"])

    async def fetch_user_events(self, username: str, per_page: int = 100) -> list[Event]:
        self._maybe_fail(f"events:{username}")
        return list(self.events)

    async def fetch_repo_activity(self, owner: str, repo: str, kind: str) -> list[dict]:
        self._maybe_fail(f"{kind}:{owner}/{repo}")
        return list(self.activity[kind])


class FakeTrending(ITrendingSource):
    def __init__(self, feeds: dict[str, list[TrendingRepo]] | None = None) -> None:
        self.feeds = feeds or {}
        self.calls: list[tuple[str, str]] = []

    async def fetch_trending(self, language: str = "", since: str = "daily") -> list[TrendingRepo]:
        self.calls.append((language, since))
        if language not in self.feeds:
            raise FetchError(f"no feed for {language!r}")
        return list(self.feeds[language])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def cache(clock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def fetcher(cache, clock) -> CachedFetcher:
    return CachedFetcher(cache=cache, clock=clock)


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()
