from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Sequence, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class BoundedExecutor:
    """
    Runs a batch of coroutine factories with at most max_concurrent in flight.

    Contract:
      - result[i] belongs to tasks[i], whatever order they finish in
      - every task is awaited to completion; nothing is cancelled
      - no retries and no error channel of its own: tasks are expected to
        absorb their failures (CachedFetcher does). If one raises anyway,
        the first such exception is re-raised after the whole batch settled.

    A fresh semaphore is created per run(), so two batches on the same
    executor do not share their budget.
    """

    def __init__(self, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    async def run(self, tasks: Sequence[Callable[[], Awaitable[T]]]) -> list[T]:
        if not tasks:
            return []
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _guarded(task: Callable[[], Awaitable[T]]) -> T:
            async with semaphore:
                return await task()

        # gather preserves submission order in its result list
        outcomes = await asyncio.gather(*[_guarded(t) for t in tasks], return_exceptions=True)

        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                log.error("Bounded task raised instead of absorbing its failure: %r", outcome)
                raise outcome
        return list(outcomes)
