"""
gazeboard/core/clock.py — Timer scheduling for the single-threaded scan core.

Every timer and deferred callback in the scan engine, classifier and item
actions goes through a :class:`Scheduler`. Two implementations:

- :class:`AsyncioScheduler` runs on an asyncio event loop (the application
  and the web surface).
- :class:`ManualScheduler` is a deterministic fake clock advanced explicitly
  with :meth:`ManualScheduler.advance` (tests, scripted replays).

Worker threads (speech, SMTP) must hand results back through
``call_soon_threadsafe`` so that engine state is only touched from the
scheduler's thread.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import threading
from collections import deque
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """Handle returned by :meth:`Scheduler.call_later`."""

    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Cooperative timer source; all times are milliseconds."""

    def now(self) -> float: ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None: ...


# ──────────────────────────────────────────────────────────────
# asyncio-backed scheduler
# ──────────────────────────────────────────────────────────────

class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop.

    Args:
        loop: Event loop to schedule on. When omitted, the running loop is
            looked up on first use, so the scheduler can be built before the
            loop starts (e.g. ahead of uvicorn's startup).
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach to *loop* explicitly."""
        self._loop = loop

    def now(self) -> float:
        return self.loop.time() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay_ms, 0.0) / 1000.0, callback)

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        self.loop.call_soon_threadsafe(callback)


# ──────────────────────────────────────────────────────────────
# Deterministic fake clock
# ──────────────────────────────────────────────────────────────

class ManualTimer:
    """Timer entry of a :class:`ManualScheduler`."""

    __slots__ = ("due", "seq", "callback", "_cancelled")

    def __init__(self, due: float, seq: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def __lt__(self, other: "ManualTimer") -> bool:
        return (self.due, self.seq) < (other.due, other.seq)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "pending"
        return f"ManualTimer(due={self.due}, {state})"


class ManualScheduler:
    """
    Fake clock: nothing fires until :meth:`advance` is called.

    Timers fire in due-time order, ties in scheduling order. Timers created
    by a firing callback run in the same :meth:`advance` call if they fall
    due within it. Cancelled timers never fire.

    Args:
        start_ms: Initial clock reading.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = start_ms
        self._heap: list[ManualTimer] = []
        self._seq = itertools.count()
        self._soon: deque[Callable[[], None]] = deque()
        self._soon_lock = threading.Lock()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self._now + max(delay_ms, 0.0), next(self._seq), callback)
        heapq.heappush(self._heap, timer)
        return timer

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        with self._soon_lock:
            self._soon.append(callback)

    def pending(self) -> int:
        """Number of live (uncancelled) timers."""
        return sum(1 for timer in self._heap if not timer.cancelled())

    def run_ready(self) -> None:
        """Run queued thread-safe callbacks and any timers already due."""
        self._drain_soon()
        while self._heap and self._heap[0].due <= self._now:
            timer = heapq.heappop(self._heap)
            if not timer.cancelled():
                timer.callback()
            self._drain_soon()

    def advance(self, ms: float) -> None:
        """
        Move the clock forward by *ms*, firing everything that falls due.

        Raises:
            ValueError: If *ms* is negative.
        """
        if ms < 0:
            raise ValueError(f"cannot advance by a negative amount: {ms}")
        target = self._now + ms
        self._drain_soon()
        while self._heap and self._heap[0].due <= target:
            timer = heapq.heappop(self._heap)
            if timer.cancelled():
                continue
            self._now = timer.due
            timer.callback()
            self._drain_soon()
        self._now = target

    def _drain_soon(self) -> None:
        while True:
            with self._soon_lock:
                if not self._soon:
                    return
                callback = self._soon.popleft()
            callback()
