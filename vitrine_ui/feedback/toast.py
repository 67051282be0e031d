from __future__ import annotations

from vitrine_core.core.task_scheduler import ScheduledTask, TaskScheduler
from vitrine_core.ui.element import PageElement
from vitrine_core.ui.page_loader import Page

TOAST_ID = "site-toast"
SHOW_CLASS = "show"


class Toast:
    """Single page-wide notice; a new message restarts the hide timer."""

    def __init__(self, page: Page, scheduler: TaskScheduler, *, duration_ms: float = 2500.0) -> None:
        if duration_ms <= 0:
            raise ValueError("duration_ms must be > 0")
        self._page = page
        self._scheduler = scheduler
        self._duration_ms = float(duration_ms)
        self._hide_task: ScheduledTask | None = None

    @property
    def element(self) -> PageElement | None:
        return self._page.get(TOAST_ID)

    @property
    def visible(self) -> bool:
        element = self.element
        return element is not None and element.has_class(SHOW_CLASS)

    def show(self, message: str = "Done", duration_ms: float | None = None) -> PageElement:
        element = self.element
        if element is None:
            element = self._page.create_element(TOAST_ID, classes={"toast"})
            element.set_attribute("role", "status")
        element.text = message
        element.add_class(SHOW_CLASS)
        if self._hide_task is not None:
            self._hide_task.cancel()
        ms = self._duration_ms if duration_ms is None else float(duration_ms)
        self._hide_task = self._scheduler.call_later(ms, self.hide, name="toast:hide")
        return element

    def hide(self) -> None:
        if self._hide_task is not None:
            self._hide_task.cancel()
            self._hide_task = None
        element = self.element
        if element is not None:
            element.remove_class(SHOW_CLASS)
