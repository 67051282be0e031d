from __future__ import annotations

from dataclasses import dataclass, field
import heapq
import logging
import time
from typing import Callable

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]
TaskCallback = Callable[[], None]


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ManualClock:
    """Millisecond clock advanced explicitly; drives replays and tests."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)

    def __call__(self) -> float:
        return self._now_ms

    def set(self, now_ms: float) -> None:
        if now_ms < self._now_ms:
            raise ValueError("clock cannot move backwards")
        self._now_ms = float(now_ms)

    def advance(self, delta_ms: float) -> float:
        if delta_ms < 0:
            raise ValueError("delta_ms must be >= 0")
        self._now_ms += float(delta_ms)
        return self._now_ms


@dataclass(eq=False)
class ScheduledTask:
    """Handle for a pending timer or frame callback."""

    task_id: int
    name: str
    due_ms: float
    callback: TaskCallback = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    @property
    def pending(self) -> bool:
        return not self.cancelled and not self.fired

    def cancel(self) -> bool:
        if not self.pending:
            return False
        self.cancelled = True
        return True


class TaskScheduler:
    """Cooperative timer and frame queue pumped by `tick`.

    Nothing runs on its own: callers (the site runtime, a replay loop, tests)
    call `tick(now_ms)` and every due timer runs on the caller's thread.
    Frame callbacks requested during a tick run on the following tick.
    """

    def __init__(self, clock: Clock | None = None, frame_interval_ms: float = 1000.0 / 60.0) -> None:
        if frame_interval_ms <= 0:
            raise ValueError("frame_interval_ms must be > 0")
        self._clock = clock or monotonic_ms
        self._frame_interval_ms = frame_interval_ms
        self._timers: list[tuple[float, int, ScheduledTask]] = []
        self._frame_tasks: list[ScheduledTask] = []
        self._next_task_id = 1
        self._last_error: Exception | None = None

    @property
    def frame_interval_ms(self) -> float:
        return self._frame_interval_ms

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    def now(self) -> float:
        return float(self._clock())

    def call_later(self, delay_ms: float, callback: TaskCallback, *, name: str = "timer") -> ScheduledTask:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        task = ScheduledTask(
            task_id=self._take_id(),
            name=name,
            due_ms=self.now() + float(delay_ms),
            callback=callback,
        )
        heapq.heappush(self._timers, (task.due_ms, task.task_id, task))
        return task

    def request_frame(self, callback: TaskCallback, *, name: str = "frame") -> ScheduledTask:
        task = ScheduledTask(
            task_id=self._take_id(),
            name=name,
            due_ms=self.now() + self._frame_interval_ms,
            callback=callback,
        )
        self._frame_tasks.append(task)
        return task

    def pending_count(self) -> int:
        timers = sum(1 for _, _, task in self._timers if task.pending)
        frames = sum(1 for task in self._frame_tasks if task.pending)
        return timers + frames

    def tick(self, now_ms: float | None = None) -> int:
        """Run frame callbacks queued before this tick, then every due timer.

        Returns the number of callbacks that ran.
        """

        now = self.now() if now_ms is None else float(now_ms)
        ran = 0
        frames, self._frame_tasks = self._frame_tasks, []
        for task in frames:
            if self._fire(task):
                ran += 1

        # Timers added while this pass runs wait for the next tick.
        horizon = self._next_task_id
        deferred: list[tuple[float, int, ScheduledTask]] = []
        while self._timers and self._timers[0][0] <= now:
            entry = heapq.heappop(self._timers)
            task = entry[2]
            if task.task_id >= horizon:
                deferred.append(entry)
                continue
            if self._fire(task):
                ran += 1
        for entry in deferred:
            heapq.heappush(self._timers, entry)
        return ran

    def cancel_all(self) -> int:
        cancelled = 0
        for _, _, task in self._timers:
            if task.cancel():
                cancelled += 1
        for task in self._frame_tasks:
            if task.cancel():
                cancelled += 1
        self._timers = []
        self._frame_tasks = []
        return cancelled

    def _fire(self, task: ScheduledTask) -> bool:
        if not task.pending:
            return False
        task.fired = True
        try:
            task.callback()
        except Exception as exc:  # noqa: BLE001
            self._last_error = exc
            LOGGER.exception("scheduled task %s (%s) failed", task.task_id, task.name)
        return True

    def _take_id(self) -> int:
        task_id = self._next_task_id
        self._next_task_id += 1
        return task_id


class FrameThrottle:
    """Collapses bursts of triggers into one callback on the next frame."""

    def __init__(self, scheduler: TaskScheduler, callback: TaskCallback, *, name: str = "throttle") -> None:
        self._scheduler = scheduler
        self._callback = callback
        self._name = name
        self._pending: ScheduledTask | None = None

    @property
    def armed(self) -> bool:
        return self._pending is not None and self._pending.pending

    def trigger(self) -> bool:
        if self.armed:
            return False
        self._pending = self._scheduler.request_frame(self._run, name=self._name)
        return True

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _run(self) -> None:
        self._pending = None
        self._callback()
