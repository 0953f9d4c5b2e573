"""
Pure analytics over fetched repositories and events.

Nothing here does I/O and nothing here raises on sparse input: missing
language maps, empty lists or events without timestamps just produce empty
or zero results, so one thin account never fails a whole snapshot.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Mapping, Sequence

from gitlytics.domain.entities import (
    CommitTimeProfile,
    Event,
    LanguageAggregate,
    Repository,
)

TIMED_EVENT_TYPES = frozenset({"PushEvent", "PullRequestEvent", "IssuesEvent"})

# Hours in UTC. Night wraps midnight: 20:00–04:59.
EARLY_HOURS = range(5, 12)
NIGHT_HOURS = (*range(20, 24), *range(0, 5))

NIGHT_CODER = "night-coder"
EARLY_BIRD = "early-bird"


def _percent(size: float, total: float) -> float:
    """size/total as a percentage, rounded half-up to one decimal."""
    return math.floor(size / total * 1000 + 0.5) / 10


def _is_size(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


def aggregate_languages(
    repos: Iterable[Repository] | None,
    languages_by_repo: Mapping[str, Mapping[str, int] | None] | None,
) -> LanguageAggregate:
    """
    Sum language bytes over all repos (keyed by "owner/name"), then express
    them as percentages of the total, largest first.
    """
    languages_by_repo = languages_by_repo or {}
    totals: dict[str, int] = {}
    for repo in repos or ():
        langs = languages_by_repo.get(repo.full_name) or {}
        if not isinstance(langs, Mapping):
            continue
        for lang, size in langs.items():
            if not _is_size(size):
                continue
            totals[lang] = totals.get(lang, 0) + size

    ordered = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    total = sum(size for _, size in ordered) or 1
    percentages = [(lang, _percent(size, total)) for lang, size in ordered]
    return LanguageAggregate(totals=totals, percentages=percentages, top3=percentages[:3])


def topics_frequency(repos: Iterable[Repository] | None) -> list[tuple[str, int]]:
    """Topic tag counts, most common first; ties keep first-seen order."""
    counts: Counter[str] = Counter()
    for repo in repos or ():
        counts.update(repo.topics or ())
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def activity_score(repo: Repository) -> float:
    return repo.open_issues_count * 1 + repo.fork_count * 0.5 + repo.star_count * 0.2


def most_starred(repos: Sequence[Repository] | None, top_n: int = 3) -> list[Repository]:
    return sorted(repos or (), key=lambda r: r.star_count, reverse=True)[:top_n]


def most_active(repos: Sequence[Repository] | None, top_n: int = 3) -> list[Repository]:
    """Ranks by open issues, forks and stars, in that order of weight."""
    return sorted(repos or (), key=activity_score, reverse=True)[:top_n]


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def classify_hours(hours: Sequence[int] | None) -> str:
    # short or missing arrays count as zero for the absent hours
    hours = list(hours or ())[:24]
    hours += [0] * (24 - len(hours))
    early = sum(hours[h] for h in EARLY_HOURS)
    night = sum(hours[h] for h in NIGHT_HOURS)
    # a tie stays early-bird
    return NIGHT_CODER if night > early else EARLY_BIRD


def commit_time_distribution(events: Iterable[Event] | None) -> CommitTimeProfile:
    hours = [0] * 24
    for event in events or ():
        if event.event_type not in TIMED_EVENT_TYPES or event.created_at is None:
            continue
        hours[_utc(event.created_at).hour] += 1
    return CommitTimeProfile(hours=hours, profile=classify_hours(hours))


def week_key(ts: datetime) -> str:
    """
    Naive "YYYY-Www" key: days since Jan 1 shifted by Jan 1's weekday
    (Sunday = 0). Good for week-over-week comparison, not ISO-8601.
    """
    ts = _utc(ts)
    jan1 = datetime(ts.year, 1, 1, tzinfo=timezone.utc)
    days = (ts - jan1).total_seconds() / 86400
    jan1_weekday = (jan1.weekday() + 1) % 7
    week = math.ceil((days + jan1_weekday + 1) / 7)
    return f"{ts.year}-W{week:02d}"


def weekly_activity(events: Iterable[Event] | None) -> list[tuple[str, int]]:
    """Event counts per naive week, all event types, sorted by week key."""
    counts: Counter[str] = Counter()
    for event in events or ():
        if event.created_at is None:
            continue
        counts[week_key(event.created_at)] += 1
    return sorted(counts.items())
