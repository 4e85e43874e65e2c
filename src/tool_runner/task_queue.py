"""Bounded-concurrency queue for asynchronous units of work."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from tool_runner.config import default_max_jobs

T = TypeVar("T")


class TaskQueue(Generic[T]):
    """Runs queued units in FIFO order with at most ``max_jobs`` in flight.

    Units are admitted immediately; only the start of their execution waits
    for a free slot. ``asyncio.Semaphore`` wakes waiters in arrival order,
    so execution starts in admission order.
    """

    def __init__(self, max_jobs: int | None = None) -> None:
        self.max_jobs = default_max_jobs() if max_jobs is None else max_jobs
        if self.max_jobs < 1:
            raise ValueError(f"max_jobs must be >= 1, got {self.max_jobs}")
        self._slots = asyncio.Semaphore(self.max_jobs)
        self._pending: set[asyncio.Task[T]] = set()
        self._running = 0

    @property
    def pending_count(self) -> int:
        """Admitted units that have not finished yet."""

        return len(self._pending)

    @property
    def running_count(self) -> int:
        return self._running

    def add(self, unit: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        """Admit ``unit`` and return a task resolving to its result.

        Must be called while an event loop is running.
        """

        task = asyncio.ensure_future(self._execute(unit))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _execute(self, unit: Callable[[], Awaitable[T]]) -> T:
        async with self._slots:
            self._running += 1
            try:
                return await unit()
            finally:
                self._running -= 1

    async def tasks_complete(self) -> None:
        """Wait until every admitted unit has finished, successfully or not.

        Units added while waiting are waited for as well.
        """

        while self._pending:
            await asyncio.wait(set(self._pending))
