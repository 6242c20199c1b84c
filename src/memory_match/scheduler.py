from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], None]

# Tolerance for float drift when comparing virtual due times.
_EPSILON = 1e-9


class ScheduledTask:
    """Handle for a unit of deferred work returned by a :class:`Scheduler`.

    A task is either one-shot (``interval is None``) or repeating. Cancelling is
    idempotent and guarantees the callback will not run again.
    """

    def __init__(self, callback: Callback, due: float, interval: Optional[float] = None) -> None:
        self.callback = callback
        self.due = due
        self.interval = interval
        self._cancelled = False
        self._done = False

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        """True once a one-shot task has fired or any task has been cancelled."""
        return self._done or self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._on_cancel()

    def _on_cancel(self) -> None:
        pass

    def _run(self) -> None:
        if self._cancelled:
            return
        if not self.repeating:
            self._done = True
        try:
            self.callback()
        except Exception:
            logger.exception("Scheduled callback %r failed", self.callback)

    def __repr__(self) -> str:
        kind = f"every {self.interval}s" if self.repeating else "once"
        state = "cancelled" if self._cancelled else ("done" if self._done else "pending")
        return f"<ScheduledTask {kind} due={self.due:.3f} {state}>"


class Scheduler(ABC):
    """Source of cancellable deferred work (one-shot delays and periodic ticks)."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callback) -> ScheduledTask:
        """Run ``callback`` once after ``delay`` seconds."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callback) -> ScheduledTask:
        """Run ``callback`` every ``interval`` seconds until cancelled."""

    @abstractmethod
    def cancel_all(self) -> None:
        """Cancel every task this scheduler still owns."""

    @staticmethod
    def _check_delay(value: float, name: str, allow_zero: bool) -> float:
        value = float(value)
        if value < 0 or (value == 0 and not allow_zero):
            raise ValueError(f"{name} must be {'>= 0' if allow_zero else '> 0'}, got {value}")
        return value


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler advanced explicitly by the caller.

    Suited for tests and for presentation loops that already receive a frame
    delta (``on_update(dt)``): call :meth:`advance` with the elapsed seconds and
    every task that became due fires, in due-time order.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._tasks: List[ScheduledTask] = []
        self._order: dict[int, int] = {}
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> List[ScheduledTask]:
        return [t for t in self._tasks if not t.done]

    def call_later(self, delay: float, callback: Callback) -> ScheduledTask:
        delay = self._check_delay(delay, "delay", allow_zero=True)
        return self._add(ScheduledTask(callback, self._now + delay))

    def call_every(self, interval: float, callback: Callback) -> ScheduledTask:
        interval = self._check_delay(interval, "interval", allow_zero=False)
        return self._add(ScheduledTask(callback, self._now + interval, interval))

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._order.clear()

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due tasks. Returns the number of callbacks run."""
        seconds = float(seconds)
        if seconds < 0:
            raise ValueError(f"Cannot advance the clock backwards ({seconds})")
        target = self._now + seconds
        fired = 0
        while True:
            task = self._next_due(target)
            if task is None:
                break
            self._now = max(self._now, task.due)
            if task.repeating:
                task.due += task.interval  # type: ignore[operator]
            else:
                self._forget(task)
            task._run()
            fired += 1
        self._now = target
        self._prune()
        return fired

    def _add(self, task: ScheduledTask) -> ScheduledTask:
        self._order[id(task)] = next(self._seq)
        self._tasks.append(task)
        return task

    def _forget(self, task: ScheduledTask) -> None:
        if task in self._tasks:
            self._tasks.remove(task)
            self._order.pop(id(task), None)

    def _prune(self) -> None:
        for task in [t for t in self._tasks if t.done]:
            self._forget(task)

    def _next_due(self, target: float) -> Optional[ScheduledTask]:
        due = [t for t in self._tasks if not t.done and t.due <= target + _EPSILON]
        if not due:
            return None
        return min(due, key=lambda t: (t.due, self._order.get(id(t), 0)))


class _TimerTask(ScheduledTask):
    def __init__(self, owner: "ThreadingScheduler", callback: Callback, due: float, interval: Optional[float]) -> None:
        super().__init__(callback, due, interval)
        self._owner = owner
        self._timer: Optional[threading.Timer] = None

    def _arm(self, delay: float) -> None:
        timer = threading.Timer(delay, self._fire)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self) -> None:
        if self.cancelled:
            return
        self._run()
        if self.repeating and not self.cancelled:
            self._arm(self.interval)  # type: ignore[arg-type]
        else:
            self._owner._discard(self)

    def _on_cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._owner._discard(self)


class ThreadingScheduler(Scheduler):
    """Real-time scheduler backed by daemon :class:`threading.Timer` threads.

    Callbacks run on timer threads; callers that share state with them must
    serialize access themselves (the engine does so with an ``RLock``).
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tasks: set[_TimerTask] = set()

    @property
    def pending(self) -> List[ScheduledTask]:
        with self._lock:
            return [t for t in self._tasks if not t.done]

    def call_later(self, delay: float, callback: Callback) -> ScheduledTask:
        delay = self._check_delay(delay, "delay", allow_zero=True)
        return self._start(_TimerTask(self, callback, delay, None), delay)

    def call_every(self, interval: float, callback: Callback) -> ScheduledTask:
        interval = self._check_delay(interval, "interval", allow_zero=False)
        return self._start(_TimerTask(self, callback, interval, interval), interval)

    def cancel_all(self) -> None:
        with self._lock:
            tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        logger.debug("Cancelled %d timer task(s)", len(tasks))

    def _start(self, task: _TimerTask, delay: float) -> ScheduledTask:
        with self._lock:
            self._tasks.add(task)
        task._arm(delay)
        return task

    def _discard(self, task: _TimerTask) -> None:
        with self._lock:
            self._tasks.discard(task)
