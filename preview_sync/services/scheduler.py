"""Logical schedulers for debounce and settle timers.

Everything time-driven in the subsystem goes through an ``after(ms, callback)``
/ ``after_cancel(handle)`` pair, so the host can hand in Qt timers while tests
drive a :class:`VirtualScheduler` by hand.
"""
from __future__ import annotations

import heapq
import itertools
from typing import Callable, Optional, Protocol


AfterFn = Callable[[int, Callable[[], None]], object]
AfterCancelFn = Callable[[object], None]


class Scheduler(Protocol):
    def after(self, ms: int, callback: Callable[[], None]) -> object: ...

    def after_cancel(self, handle: object) -> None: ...

    def now(self) -> float: ...


class VirtualScheduler:
    """Deterministic scheduler advanced explicitly in milliseconds."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)
        self._queue: list[tuple[float, int, Callable[[], None]]] = []
        self._live: set[int] = set()
        self._ids = itertools.count(1)
        self.fired = 0

    @property
    def now_ms(self) -> float:
        return self._now_ms

    def now(self) -> float:
        """Current virtual time in seconds."""
        return self._now_ms / 1000.0

    def after(self, ms: int, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        heapq.heappush(self._queue, (self._now_ms + max(0, ms), handle, callback))
        self._live.add(handle)
        return handle

    def after_cancel(self, handle: object) -> None:
        self._live.discard(handle)  # type: ignore[arg-type]

    @property
    def pending(self) -> int:
        return len(self._live)

    def advance(self, ms: float) -> int:
        """Move the clock forward, firing every callback that comes due."""
        deadline = self._now_ms + max(0.0, ms)
        fired = 0
        while self._queue and self._queue[0][0] <= deadline:
            due, handle, callback = heapq.heappop(self._queue)
            if handle not in self._live:
                continue
            self._live.discard(handle)
            self._now_ms = max(self._now_ms, due)
            callback()
            fired += 1
        self._now_ms = deadline
        self.fired += fired
        return fired

    def run_all(self, limit: Optional[int] = 1000) -> int:
        fired = 0
        while self._live:
            if limit is not None and fired >= limit:
                break
            next_due = min(due for due, handle, _cb in self._queue if handle in self._live)
            fired += self.advance(next_due - self._now_ms)
        return fired
