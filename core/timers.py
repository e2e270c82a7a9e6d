"""
core/timers.py

Single-shot timers used for the grace period.

Two interchangeable schedulers:
  - ThreadingTimerScheduler : wall-clock, one daemon threading.Timer per call.
  - ManualTimerScheduler    : simulated clock, callbacks fire only inside
                              advance(). Used by scripted replays and tests.

Callbacks must not touch session state directly; the dispatcher passes a
callback that only posts an action into its queue.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        """Cancel the timer. Cancelling twice or after firing is a no-op."""
        raise NotImplementedError

    @property
    @abstractmethod
    def active(self) -> bool:
        raise NotImplementedError


class TimerScheduler(ABC):
    @abstractmethod
    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""
        raise NotImplementedError


class _ThreadingHandle(TimerHandle):
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()

    @property
    def active(self) -> bool:
        return self._timer.is_alive()


class ThreadingTimerScheduler(TimerScheduler):
    """Wall-clock scheduler backed by threading.Timer."""

    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle:
        t = threading.Timer(max(0.0, float(delay_sec)), callback)
        t.daemon = True
        t.start()
        return _ThreadingHandle(t)

    def now(self) -> float:
        return time.monotonic()


class _ManualHandle(TimerHandle):
    def __init__(self, due: float) -> None:
        self.due = due
        self._cancelled = False
        self._fired = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)


class ManualTimerScheduler(TimerScheduler):
    """
    Deterministic scheduler with a simulated clock.

    Usage:
        sched = ManualTimerScheduler()
        sched.call_later(2.0, cb)
        sched.advance(1.5)   # nothing fires
        sched.advance(0.5)   # cb fires at t=2.0
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._seq = itertools.count()
        self._heap: List[Tuple[float, int, _ManualHandle, Callable[[], None]]] = []
        self._lock = threading.Lock()

    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle:
        with self._lock:
            handle = _ManualHandle(self._now + max(0.0, float(delay_sec)))
            heapq.heappush(self._heap, (handle.due, next(self._seq), handle, callback))
        return handle

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for _, _, h, _ in self._heap if h.active)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing every due callback in due-time order.

        Returns the number of callbacks fired.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance clock backwards: {seconds}")
        return self.advance_to(self._now + float(seconds))

    def advance_to(self, target: float) -> int:
        fired = 0
        while True:
            entry = self._pop_due(target)
            if entry is None:
                break
            due, handle, callback = entry
            self._now = due
            handle._fired = True
            callback()
            fired += 1
        self._now = max(self._now, float(target))
        return fired

    def _pop_due(self, target: float) -> Optional[Tuple[float, _ManualHandle, Callable[[], None]]]:
        with self._lock:
            while self._heap:
                due, _, handle, callback = self._heap[0]
                if not handle.active:
                    heapq.heappop(self._heap)
                    continue
                if due > target:
                    return None
                heapq.heappop(self._heap)
                return due, handle, callback
        return None
