"""
Deferred-task scheduling for debounced auto-save.

The cart history only needs two things from its environment: a clock and a
way to run a callback once after a delay, with the option to cancel it before
it fires. Both are expressed by the :class:`Scheduler` protocol so the same
service runs under an asyncio event loop (HTTP API) or a virtual clock
(CLI session replay, tests).

Delays and clock readings are milliseconds. ``now()`` gives the same clock as
a timezone-aware datetime, used to stamp checkpoints.

Implementations
---------------
- :class:`AsyncioScheduler`: ``loop.call_later`` / ``loop.time()``.
- :class:`ManualScheduler`: a deterministic virtual clock advanced by hand.
  Callbacks run synchronously inside :meth:`ManualScheduler.advance`, in
  due-time order (ties in scheduling order).
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

Callback = Callable[[], None]


class TaskHandle(Protocol):
    """A scheduled callback that can still be cancelled."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Clock plus one-shot deferred execution."""

    def now_ms(self) -> float: ...

    def now(self) -> datetime: ...

    def call_later(self, delay_ms: float, callback: Callback) -> TaskHandle: ...


# --------------------------------------------------------------------------- #
# asyncio
# --------------------------------------------------------------------------- #


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    The loop is resolved lazily on the first ``call_later`` so the scheduler
    can be created outside a coroutine (e.g. in an app factory) and used inside
    request handlers.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now_ms(self) -> float:
        # Same clock as the default event loop, readable without a running loop.
        return time.monotonic() * 1000.0

    def now(self) -> datetime:
        return datetime.now(UTC)

    def call_later(self, delay_ms: float, callback: Callback) -> TaskHandle:
        return self._get_loop().call_later(max(0.0, delay_ms) / 1000.0, callback)


# --------------------------------------------------------------------------- #
# Virtual clock
# --------------------------------------------------------------------------- #


class ManualTask:
    """Handle returned by :meth:`ManualScheduler.call_later`."""

    __slots__ = ("due_ms", "callback", "cancelled", "fired")

    def __init__(self, due_ms: float, callback: Callback) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class ManualScheduler:
    """Single-threaded virtual clock.

    Parameters
    ----------
    start_ms:
        Initial clock reading.
    epoch:
        Wall-clock time that corresponds to a reading of 0 ms. Defaults to
        the moment of construction minus ``start_ms``, so ``now()`` starts at
        the real current time and then only moves with :meth:`advance`.
    """

    def __init__(self, start_ms: float = 0.0, epoch: datetime | None = None) -> None:
        self._now = float(start_ms)
        self._epoch = (
            epoch if epoch is not None else datetime.now(UTC) - timedelta(milliseconds=start_ms)
        )
        self._queue: list[tuple[float, int, ManualTask]] = []
        self._seq = itertools.count()

    def now_ms(self) -> float:
        return self._now

    def now(self) -> datetime:
        return self._epoch + timedelta(milliseconds=self._now)

    def call_later(self, delay_ms: float, callback: Callback) -> ManualTask:
        task = ManualTask(self._now + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (task.due_ms, next(self._seq), task))
        return task

    def pending_count(self) -> int:
        """Number of scheduled callbacks that have neither fired nor been cancelled."""
        return sum(1 for _, _, task in self._queue if task.active)

    def advance(self, ms: float) -> int:
        """Move the clock forward by ``ms``, firing every callback that falls due.

        Returns the number of callbacks that ran. Callbacks scheduled while
        advancing also fire if they fall due within the window.
        """
        if ms < 0:
            raise ValueError("Cannot move the clock backwards")
        target = self._now + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if not task.active:
                continue
            self._now = max(self._now, due)
            task.fired = True
            task.callback()
            fired += 1
        self._now = target
        return fired

    def run_pending(self) -> int:
        """Fire everything already due at the current clock reading."""
        return self.advance(0)


__all__ = [
    "AsyncioScheduler",
    "Callback",
    "ManualScheduler",
    "ManualTask",
    "Scheduler",
    "TaskHandle",
]
