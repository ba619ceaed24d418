"""
Timers - cancellable delayed callbacks and a debouncer built on them.

Two schedulers share one interface:
- ThreadingScheduler: real wall-clock timers (threading.Timer)
- ManualScheduler: virtual clock advanced explicitly, for tests and for
  hosts that pump their own event loop
"""

import heapq
import itertools
import logging
import threading
import time
from typing import Any, Callable, List, Optional, Tuple

log = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled callback that can be cancelled before it fires."""

    def __init__(self, callback: Callable, args: Tuple = ()):
        self._callback = callback
        self._args = args
        self._lock = threading.Lock()
        self.cancelled = False
        self.fired = False
        self._timer: Optional[threading.Timer] = None

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self):
        with self._lock:
            if self.fired:
                return
            self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()

    def _run(self):
        with self._lock:
            if self.cancelled or self.fired:
                return
            self.fired = True
        try:
            self._callback(*self._args)
        except Exception as e:
            log.error(f"Timer callback {getattr(self._callback, '__name__', self._callback)} failed: {e}", exc_info=True)


class Scheduler:
    """Interface for delayed execution."""

    def call_later(self, delay_seconds: float, callback: Callable, *args: Any) -> TimerHandle:
        raise NotImplementedError

    def now(self) -> float:
        raise NotImplementedError


class ThreadingScheduler(Scheduler):
    """Fires callbacks on daemon timer threads."""

    def call_later(self, delay_seconds: float, callback: Callable, *args: Any) -> TimerHandle:
        handle = TimerHandle(callback, args)
        timer = threading.Timer(max(0.0, delay_seconds), handle._run)
        timer.daemon = True
        handle._timer = timer
        timer.start()
        return handle

    def now(self) -> float:
        return time.monotonic()


class ManualScheduler(Scheduler):
    """
    Deterministic scheduler driven by advance().

    Usage:
        scheduler = ManualScheduler()
        scheduler.call_later(0.5, fn)
        scheduler.advance(0.5)   # fn runs here
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._counter = itertools.count()
        self._lock = threading.RLock()

    def call_later(self, delay_seconds: float, callback: Callable, *args: Any) -> TimerHandle:
        handle = TimerHandle(callback, args)
        with self._lock:
            due = self._now + max(0.0, delay_seconds)
            heapq.heappush(self._queue, (due, next(self._counter), handle))
        return handle

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for _, _, h in self._queue if h.active)

    def advance(self, seconds: float = 0.0) -> int:
        """
        Move the clock forward, firing every callback that comes due.

        Callbacks scheduled by other callbacks fire in the same call if they
        fall inside the window.

        Returns:
            Number of callbacks fired
        """
        target = self._now + seconds
        fired = 0
        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                due, _, handle = heapq.heappop(self._queue)
                self._now = max(self._now, due)
            if handle.active:
                handle._run()
                fired += 1
        self._now = target
        return fired


class Debouncer:
    """
    Collapses bursts of triggers into one call after a quiet period.

    Each trigger re-arms the timer and replaces the pending arguments;
    superseded triggers are dropped, never queued.
    """

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable):
        self.scheduler = scheduler
        self.delay = delay
        self.callback = callback
        self._handle: Optional[TimerHandle] = None
        self._args: Tuple = ()
        self._lock = threading.RLock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._handle is not None and self._handle.active

    def trigger(self, *args: Any):
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._args = args
            self._handle = self.scheduler.call_later(self.delay, self._fire, args)

    def cancel(self):
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None

    def flush(self) -> bool:
        """Run the pending call now. Returns False if nothing was pending."""
        with self._lock:
            if self._handle is None or not self._handle.active:
                return False
            self._handle.cancel()
            self._handle = None
            args = self._args
        self.callback(*args)
        return True

    def _fire(self, args: Tuple):
        with self._lock:
            if self._handle is not None and self._handle.fired:
                self._handle = None
        self.callback(*args)
