from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Callable

from vitrine_core.core.task_scheduler import ScheduledTask, TaskScheduler
from vitrine_core.ui.element import PageElement

from .viewport import ViewportWatcher

LOGGER = logging.getLogger(__name__)

REVEALED_CLASS = "visible"

RevealCallback = Callable[[PageElement], None]


@dataclass(frozen=True)
class RevealTarget:
    element: PageElement
    delay_ms: float | None = None
    stagger_index: int | None = None

    def effective_delay_ms(self, stagger_unit_ms: float) -> float:
        if self.delay_ms is not None:
            return max(0.0, self.delay_ms)
        if self.stagger_index is not None:
            return max(0, self.stagger_index) * stagger_unit_ms
        return 0.0


class RevealScheduler:
    """Owns the pending reveal set; every registered element reveals at most once.

    An id leaves the pending set exactly when its `visible` class is applied,
    so repeated viewport notifications, sweeps and timers cannot reveal twice.
    """

    def __init__(
        self,
        scheduler: TaskScheduler,
        *,
        stagger_unit_ms: float = 80.0,
        sweep_delay_ms: float = 150.0,
        on_revealed: RevealCallback | None = None,
    ) -> None:
        if stagger_unit_ms < 0:
            raise ValueError("stagger_unit_ms must be >= 0")
        if sweep_delay_ms < 0:
            raise ValueError("sweep_delay_ms must be >= 0")
        self._scheduler = scheduler
        self._stagger_unit_ms = float(stagger_unit_ms)
        self._sweep_delay_ms = float(sweep_delay_ms)
        self._on_revealed = on_revealed or (lambda element: None)
        self._watcher: ViewportWatcher | None = None
        self._pending: dict[str, RevealTarget] = {}
        self._scheduled: dict[str, ScheduledTask] = {}
        self._revealed: set[str] = set()
        self._sweep_task: ScheduledTask | None = None

    def attach_watcher(self, watcher: ViewportWatcher) -> None:
        self._watcher = watcher

    @property
    def pending_ids(self) -> set[str]:
        return set(self._pending)

    @property
    def revealed_ids(self) -> set[str]:
        return set(self._revealed)

    def is_revealed(self, element: PageElement) -> bool:
        return element.element_id in self._revealed

    def register(
        self,
        element: PageElement,
        delay_ms: float | None = None,
        stagger_index: int | None = None,
    ) -> bool:
        element_id = element.element_id
        if element_id in self._pending or element_id in self._revealed:
            return False
        if delay_ms is None:
            delay_ms = _parse_number(element.data("delay"), element_id, "data-delay")
        if stagger_index is None:
            raw_index = _parse_number(element.data("stagger"), element_id, "data-stagger")
            stagger_index = None if raw_index is None else int(raw_index)
        self._pending[element_id] = RevealTarget(element, delay_ms=delay_ms, stagger_index=stagger_index)
        if self._watcher is not None:
            self._watcher.observe(element)
        return True

    def on_viewport_enter(self, element: PageElement) -> None:
        element_id = element.element_id
        target = self._pending.get(element_id)
        if target is None or element_id in self._scheduled:
            return
        delay = target.effective_delay_ms(self._stagger_unit_ms)
        if delay <= 0:
            self._reveal(element_id)
            return
        self._scheduled[element_id] = self._scheduler.call_later(
            delay, lambda: self._reveal(element_id), name=f"reveal:{element_id}"
        )

    def start(self) -> None:
        if self._watcher is not None:
            self._watcher.check()
        if self._sweep_task is not None:
            self._sweep_task.cancel()
        self._sweep_task = self._scheduler.call_later(self._sweep_delay_ms, self.sweep, name="reveal:sweep")

    def sweep(self) -> int:
        """Force-reveal pending elements that are already on screen but were never scheduled."""

        if self._watcher is None:
            return 0
        revealed = 0
        for element in self._watcher.visible_now():
            element_id = element.element_id
            if element_id in self._scheduled:
                continue
            if self._reveal(element_id):
                revealed += 1
        if revealed:
            LOGGER.debug("startup sweep revealed %d element(s)", revealed)
        return revealed

    def teardown(self) -> None:
        for task in self._scheduled.values():
            task.cancel()
        self._scheduled.clear()
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            self._sweep_task = None
        if self._watcher is not None:
            self._watcher.disconnect()

    def _reveal(self, element_id: str) -> bool:
        self._scheduled.pop(element_id, None)
        target = self._pending.pop(element_id, None)
        if target is None:
            return False
        element = target.element
        element.add_class(REVEALED_CLASS)
        self._revealed.add(element_id)
        if self._watcher is not None:
            self._watcher.unobserve(element)
        self._on_revealed(element)
        return True


def _parse_number(raw: str | None, element_id: str, attribute: str) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        LOGGER.warning("ignoring non-numeric %s=%r on %s", attribute, raw, element_id)
        return None
    return value
