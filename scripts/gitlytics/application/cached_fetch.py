from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable, TypeVar

from gitlytics.domain.entities import FetchResult, utc_now
from gitlytics.domain.errors import FetchError
from gitlytics.domain.interfaces import ICacheStore

log = logging.getLogger(__name__)

T = TypeVar("T")


class CachedFetcher:
    """
    Cache-aside wrapper that never raises for upstream trouble.

    Every fetch path (profile, repo pages, languages, events, trending) goes
    through fetch(), so all of them share one rule: a failure is stored
    nowhere and comes back as FetchResult(value=None, error=...).
    """

    def __init__(self, cache: ICacheStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._cache = cache
        self._clock = clock

    async def fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[T]],
        ttl_seconds: float,
        force_refresh: bool = False,
    ) -> FetchResult[T]:
        if force_refresh:
            # Invalidate first: even if the refetch fails, no stale read follows.
            self._cache.delete(key)
        else:
            entry = self._cache.get(key)
            if entry is not None:
                log.debug("Cache hit: %s", key)
                return FetchResult(value=entry.value, fetched_at=entry.fetched_at)

        log.debug("Cache miss: %s", key)
        try:
            value = await fetch_fn()
        except FetchError as exc:
            log.warning("Fetch failed for %s: %s", key, exc)
            return FetchResult(value=None, fetched_at=self._clock(), error=exc)

        if value is None:
            log.warning("Fetch for %s returned nothing", key)
            return FetchResult(value=None, fetched_at=self._clock(),
                               error=FetchError(f"Empty payload for {key}"))

        entry = self._cache.set(key, value, ttl_seconds)
        return FetchResult(value=value, fetched_at=entry.fetched_at)
