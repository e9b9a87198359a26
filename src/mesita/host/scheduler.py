"""Cooperative schedulers for deferred host work.

Mesita never blocks. Caret placement, post-navigation checks and mutation
delivery are short fire-and-forget continuations handed to a scheduler.

ManualScheduler:
    A virtual clock. Nothing runs until ``advance()`` or ``run_until_idle()``
    is called, which makes ordering fully deterministic in tests.

AsyncioScheduler:
    Delegates to ``loop.call_later`` for hosts that run an asyncio loop.

"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Protocol

from mesita.errors import HostError


class Scheduler(Protocol):
    """Protocol for deferred-callback schedulers.

    Callbacks are uncancellable and run in due-time order; ties run in the
    order they were scheduled.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        """Run ``callback`` after ``delay`` seconds."""
        ...


class ManualScheduler:
    """Virtual-clock scheduler driven explicitly by the caller."""

    __slots__ = ("_now", "_queue", "_seq")

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, Callable[[], None]]] = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return len(self._queue)

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        due = self._now + max(delay, 0.0)
        heapq.heappush(self._queue, (due, next(self._seq), callback))

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward, running every callback that falls due.

        Callbacks scheduled while advancing run too if they fall due before
        the new time.

        Returns:
            Number of callbacks run
        """
        deadline = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= deadline:
            due, _, callback = heapq.heappop(self._queue)
            self._now = due
            callback()
            ran += 1
        self._now = deadline
        return ran

    def run_until_idle(self, limit: int = 10_000) -> int:
        """Run callbacks until none are left, advancing the clock as needed.

        Raises:
            HostError: If more than ``limit`` callbacks run, which means some
                work keeps rescheduling itself.
        """
        ran = 0
        while self._queue:
            if ran >= limit:
                raise HostError(f"scheduler did not go idle after {limit} callbacks")
            due, _, callback = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            callback()
            ran += 1
        return ran


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    __slots__ = ("_loop",)

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        loop = self._loop or asyncio.get_running_loop()
        loop.call_later(max(delay, 0.0), callback)


__all__ = [
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
]
