from __future__ import annotations

import json
from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from .errors import FetchError

T = TypeVar("T")

# Reported as last_updated when nothing could be fetched at all, so callers
# can tell total failure apart from a genuinely old cache hit.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    """
    One value held by the cache store.

    Owned by the store: created by set(), replaced by the next set() on the
    same key, dropped by delete() or once expires_at has passed.
    """
    key:        str
    value:      Any
    fetched_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """
    Outcome of one cached fetch.

    When ok is False, value is None and fetched_at is simply "now": it must
    not be read as a successful refresh and is excluded from freshness
    reconciliation.
    """
    value:      T | None
    fetched_at: datetime
    error:      FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None


@dataclass(frozen=True)
class UserProfile:
    login:        str
    name:         str | None
    avatar_url:   str | None
    html_url:     str | None
    bio:          str | None
    public_repos: int
    followers:    int
    following:    int
    created_at:   datetime | None


@dataclass(frozen=True)
class Repository:
    """
    Read-only snapshot of a repository as listed under a user.

    Field names are ours, the GitHub spelling lives in the client only.
    """
    owner_login:       str
    name:              str
    description:       str | None
    language:          str | None
    star_count:        int
    fork_count:        int
    open_issues_count: int
    topics:            tuple[str, ...]
    pushed_at:         datetime | None
    html_url:          str | None = None
    is_fork:           bool = False

    @property
    def full_name(self) -> str:
        return f"{self.owner_login}/{self.name}"


@dataclass(frozen=True)
class Event:
    event_type: str
    created_at: datetime | None
    repo_name:  str | None = None


@dataclass(frozen=True)
class TrendingRepo:
    full_name:   str
    description: str
    stars:       int
    language:    str
    url:         str


@dataclass(frozen=True)
class RepoStats:
    commits: tuple[dict, ...]
    issues:  tuple[dict, ...]
    pulls:   tuple[dict, ...]


@dataclass(frozen=True)
class LanguageAggregate:
    totals:      dict[str, int]
    percentages: list[tuple[str, float]]
    top3:        list[tuple[str, float]]


@dataclass(frozen=True)
class CommitTimeProfile:
    hours:   list[int]
    profile: str


@dataclass(frozen=True)
class DomainInference:
    domain: str
    scores: dict[str, float]


@dataclass(frozen=True)
class ProjectIdea:
    title:       str
    description: str
    tag:         str


@dataclass(frozen=True)
class Recommendations:
    login:            str
    avatar_url:       str | None
    trending_matches: list[TrendingRepo]
    personal_ideas:   list[ProjectIdea]
    trending_sample:  list[TrendingRepo]


@dataclass(frozen=True)
class InsightsSnapshot:
    """
    Everything known about one account at one point in time.

    This is the only object handed to a snapshot sink.
    """
    user:         UserProfile
    repos_count:  int
    languages:    LanguageAggregate
    topics:       list[tuple[str, int]]
    top_starred:  list[Repository]
    top_active:   list[Repository]
    commit_times: CommitTimeProfile
    weekly:       list[tuple[str, int]]
    domain:       DomainInference


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def to_json(obj: Any, **kwargs: Any) -> str:
    """Serialize domain objects, or plain structures holding them, to JSON."""
    return json.dumps(obj, default=_encode, **kwargs)
