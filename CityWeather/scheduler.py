"""Timer abstraction - allows swapping real timers with a manual test clock."""
import heapq
import itertools
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Tuple


class TimerHandle(ABC):
    """A scheduled callback that can still be cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        pass


class Scheduler(ABC):
    """Abstract interface for running a callback after a delay."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Run ``callback`` once after ``delay`` seconds.

        Returns:
            TimerHandle: Handle to cancel the callback before it runs
        """
        pass


class _ThreadingTimerHandle(TimerHandle):
    def __init__(self, timer: threading.Timer):
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingScheduler(Scheduler):
    """Scheduler backed by ``threading.Timer`` (one daemon thread per timer)."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return _ThreadingTimerHandle(timer)


class _FakeTimerHandle(TimerHandle):
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler(Scheduler):
    """
    Fake scheduler for testing - callbacks run only when the clock is advanced.

    Useful for unit tests that need debounce and retry delays without
    sleeping.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, _FakeTimerHandle, Callable[[], None]]] = []
        self._counter = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _FakeTimerHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._counter), handle, callback))
        return handle

    def advance(self, seconds: float) -> None:
        """
        Move the clock forward, running every callback that falls due.

        Callbacks scheduled while advancing run too if they fall inside the
        window.
        """
        deadline = self.now + seconds
        while self._queue and self._queue[0][0] <= deadline:
            when, _, handle, callback = heapq.heappop(self._queue)
            self.now = when
            if not handle.cancelled:
                callback()
        self.now = deadline

    @property
    def pending(self) -> int:
        """Number of callbacks still waiting to run (for testing)."""
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)
