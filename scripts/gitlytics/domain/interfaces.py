"""
Domain Layer — Interfaces (Abstract Contracts)
-----------------------------------------------
The application layer depends on these, never on the concrete classes in
infrastructure. Tests substitute in-memory fakes for any of them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .entities import (
    CacheEntry,
    Event,
    InsightsSnapshot,
    Repository,
    TrendingRepo,
    UserProfile,
)


class ICacheStore(ABC):
    """
    Key/value store with a per-entry TTL.

    Expiry is evaluated when an entry is read; an expired entry behaves
    exactly like a missing one.
    """

    @abstractmethod
    def get(self, key: str) -> CacheEntry | None:
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float) -> CacheEntry:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class IGitHubFetcher(ABC):
    """
    Contract that any GitHub REST client must fulfil.

    Every method either returns parsed domain data or raises a FetchError
    subclass. Nothing is cached at this level.
    """

    @abstractmethod
    async def fetch_user(self, username: str) -> UserProfile:
        ...

    @abstractmethod
    async def fetch_repos_page(self, username: str, page: int, per_page: int = 100) -> list[Repository]:
        ...

    @abstractmethod
    async def fetch_repo_languages(self, owner: str, repo: str) -> dict[str, int]:
        ...

    @abstractmethod
    async def fetch_user_events(self, username: str, per_page: int = 100) -> list[Event]:
        ...

    @abstractmethod
    async def fetch_repo_activity(self, owner: str, repo: str, kind: str) -> list[dict]:
        """kind is one of "commits", "issues", "pulls"."""
        ...


class ITrendingSource(ABC):

    @abstractmethod
    async def fetch_trending(self, language: str = "", since: str = "daily") -> list[TrendingRepo]:
        ...


class ISnapshotSink(ABC):
    """Receives finished snapshots. Storage details are the sink's business."""

    @abstractmethod
    def save(self, snapshot: InsightsSnapshot, last_updated: str) -> None:
        ...
