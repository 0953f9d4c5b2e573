from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable, Iterable, TypeVar

from gitlytics.domain.entities import EPOCH
from .bounded import BoundedExecutor
from .cached_fetch import CachedFetcher

log = logging.getLogger(__name__)

T = TypeVar("T")

PAGE_CONCURRENCY = 2


class PageAggregator:
    """
    Fetches several pages of one resource and flattens them.

    Each page is its own cache entry (key = "<prefix>:<page>"). A failed page
    is dropped; an empty page is a legitimate success (the resource simply
    has fewer items) and contributes nothing but its timestamp.
    """

    def __init__(self, fetcher: CachedFetcher, executor: BoundedExecutor | None = None) -> None:
        self._fetcher = fetcher
        self._executor = executor or BoundedExecutor(PAGE_CONCURRENCY)

    async def fetch_all_pages(
        self,
        key_prefix: str,
        page_fetch_fn: Callable[[int], Awaitable[list[T]]],
        page_numbers: Iterable[int],
        ttl_seconds: float,
        force_refresh: bool = False,
    ) -> tuple[list[T], datetime]:
        """
        Returns (items, last_updated). last_updated is the newest fetched_at
        among successful pages, or EPOCH when every page failed.
        """
        pages = list(page_numbers)

        def _task(page: int):
            return lambda: self._fetcher.fetch(
                f"{key_prefix}:{page}",
                lambda: page_fetch_fn(page),
                ttl_seconds,
                force_refresh,
            )

        results = await self._executor.run([_task(p) for p in pages])

        items: list[T] = []
        last_updated = EPOCH
        failed = 0
        for result in results:
            if not result.ok:
                failed += 1
                continue
            items.extend(result.value)
            last_updated = max(last_updated, result.fetched_at)

        if failed:
            log.warning("%s: %d/%d pages failed", key_prefix, failed, len(pages))
        return items, last_updated
