from __future__ import annotations

import copy
import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable

from gitlytics.domain.entities import CacheEntry, utc_now
from gitlytics.domain.interfaces import ICacheStore

log = logging.getLogger(__name__)


class InMemoryCacheStore(ICacheStore):
    """
    Process-local TTL cache.

    Expired entries are purged lazily when read; there is no size-based
    eviction. The threading.Lock keeps get/set/delete atomic even when the
    store is shared with worker threads, not just coroutines. Two writers on
    the same key resolve as last-writer-wins.

    Values are deep-copied on the way in and on the way out, so a caller
    mutating what it got back never changes what the next reader sees.

    The clock is injected so tests can move time forward without sleeping.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                log.debug("Cache expired: %s", key)
                return None
        return replace(entry, value=copy.deepcopy(entry.value))

    def set(self, key: str, value: Any, ttl_seconds: float) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(
            key        = key,
            value      = copy.deepcopy(value),
            fetched_at = now,
            expires_at = now + timedelta(seconds=ttl_seconds),
        )
        with self._lock:
            self._entries[key] = entry
        return replace(entry, value=value)

    def delete(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                log.debug("Cache invalidated: %s", key)

    def sweep(self) -> int:
        """Drop every expired entry. Optional; get() already ignores them."""
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.is_expired(now)]
            for k in stale:
                del self._entries[k]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
