"""
Coordinating context and countdown timers

Every timer in the engine (gesture hold, SOS countdown, safe walk, alarm
auto-stop, detector restarts) runs as a scheduled callback on a single
Coordinator thread. Detector workers hand events over with post() and never
call into the alarm directly.
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled callback. Cancelling is safe from any thread."""

    __slots__ = ("due", "callback", "args", "name", "cancelled")

    def __init__(self, due, callback, args, name):
        self.due = due
        self.callback = callback
        self.args = args
        self.name = name
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class Coordinator:
    """
    Single-threaded scheduler. The clock is injectable and run_pending() can
    be driven by hand, so tests control time deterministically.
    """

    def __init__(self, clock=time.monotonic, name="Coordinator"):
        self.clock = clock
        self.name = name
        self._cond = threading.Condition()
        self._queue = []
        self._sequence = itertools.count()
        self._running = False
        self._thread = None

    def now(self):
        return self.clock()

    def call_later(self, delay, callback, *args):
        handle = TimerHandle(self.clock() + max(0.0, delay), callback, args,
                             getattr(callback, "__name__", repr(callback)))
        with self._cond:
            heapq.heappush(self._queue, (handle.due, next(self._sequence), handle))
            self._cond.notify()
        return handle

    def post(self, callback, *args):
        return self.call_later(0.0, callback, *args)

    @property
    def pending(self):
        with self._cond:
            return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def _pop_due(self):
        with self._cond:
            now = self.clock()
            due = []
            while self._queue and self._queue[0][0] <= now:
                _, _, handle = heapq.heappop(self._queue)
                if not handle.cancelled:
                    due.append(handle)
            return due

    def _invoke(self, handle):
        try:
            handle.callback(*handle.args)
        except Exception:
            logger.exception(f"Scheduled callback '{handle.name}' failed")

    def run_pending(self):
        """
        Run every callback that is due, including ones scheduled as due by the
        callbacks themselves. Returns the number of callbacks run.
        """
        ran = 0
        while True:
            due = self._pop_due()
            if not due:
                return ran
            for handle in due:
                if handle.cancelled:
                    continue
                self._invoke(handle)
                ran += 1

    def in_coordinator_thread(self):
        return threading.current_thread() is self._thread

    def _loop(self):
        while self._running:
            self.run_pending()
            with self._cond:
                if not self._running:
                    break
                timeout = 0.5
                if self._queue:
                    timeout = min(timeout, max(0.0, self._queue[0][0] - self.clock()))
                if timeout > 0:
                    self._cond.wait(timeout)

    def start(self):
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.debug("Coordinator started")

    def stop(self):
        with self._cond:
            if not self._running:
                return
            self._running = False
            self._cond.notify_all()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        logger.debug("Coordinator stopped")


@dataclass(frozen=True)
class HoldTick:
    elapsed_ms: int
    remaining_ms: int
    progress_percent: int


class HoldTimer:
    """
    Countdown emitting a tick every `tick_interval` seconds and exactly one
    terminal event: on_complete when `duration` has elapsed, or on_cancel
    when aborted.

    Every start bumps a generation counter; a tick only acts if its
    generation is still current, so a cancel that races the final tick
    (including a cancel issued from inside on_tick) always wins.
    """

    def __init__(self, coordinator, duration, tick_interval,
                 on_tick=None, on_complete=None, on_cancel=None, name="hold"):
        if duration <= 0 or tick_interval <= 0:
            raise ValueError("duration and tick_interval must be positive")
        self.coordinator = coordinator
        self.duration = duration
        self.tick_interval = tick_interval
        self.on_tick = on_tick
        self.on_complete = on_complete
        self.on_cancel = on_cancel
        self.name = name

        self._lock = threading.Lock()
        self._generation = 0
        self._active = False
        self._started_at = None
        self._handle = None

    @property
    def is_active(self):
        with self._lock:
            return self._active

    @property
    def deadline(self):
        with self._lock:
            if self._started_at is None:
                return None
            return self._started_at + self.duration

    def remaining(self):
        with self._lock:
            if not self._active:
                return 0.0
            return max(0.0, self._started_at + self.duration - self.coordinator.now())

    def _begin(self):
        # Caller holds the lock
        if self._handle is not None:
            self._handle.cancel()
        self._generation += 1
        self._active = True
        self._started_at = self.coordinator.now()
        self._handle = self.coordinator.call_later(
            min(self.tick_interval, self.duration), self._tick, self._generation)

    def start(self):
        with self._lock:
            if self._active:
                return False
            self._begin()
        logger.debug(f"{self.name} timer started ({self.duration}s)")
        return True

    def restart(self):
        """Start over from now, whether or not the timer is running."""
        with self._lock:
            self._begin()
        logger.debug(f"{self.name} timer restarted")

    def cancel(self):
        with self._lock:
            if not self._active:
                return False
            self._active = False
            self._generation += 1
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None
        logger.debug(f"{self.name} timer cancelled")
        if self.on_cancel:
            self.on_cancel()
        return True

    def _tick(self, generation):
        with self._lock:
            if generation != self._generation or not self._active:
                return
            elapsed = self.coordinator.now() - self._started_at

        remaining = max(0.0, self.duration - elapsed)
        if self.on_tick:
            self.on_tick(HoldTick(
                elapsed_ms=int(elapsed * 1000),
                remaining_ms=int(remaining * 1000),
                progress_percent=min(100, int(elapsed * 100 / self.duration)),
            ))

        with self._lock:
            if generation != self._generation or not self._active:
                return
            completed = elapsed >= self.duration
            if completed:
                self._active = False
                self._generation += 1
                self._handle = None
            else:
                self._handle = self.coordinator.call_later(
                    min(self.tick_interval, remaining), self._tick, generation)

        if completed:
            logger.debug(f"{self.name} timer completed")
            if self.on_complete:
                self.on_complete()
