from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Literal

from vitrine_core.core.task_scheduler import ScheduledTask, TaskScheduler
from vitrine_core.ui.element import PageElement
from vitrine_core.ui.page_loader import Page

LOGGER = logging.getLogger(__name__)

ModalState = Literal["closed", "opening", "open"]
ModalCallback = Callable[[ModalState, "ModalContent"], None]

ACTIVE_CLASS = "active"
CANCEL_KEY = "Escape"


@dataclass(frozen=True)
class ModalContent:
    image: str = ""
    title: str = ""
    description: str = ""


def content_from_card(card: PageElement) -> ModalContent:
    """Read modal content from a gallery card's data attributes or children."""

    image = card.data("img")
    if not image:
        img = card.find_descendant(tag="img")
        image = img.get_attribute("src", "") if img is not None else ""
    title = card.data("title")
    if not title:
        heading = card.find_descendant(tag="h3")
        title = heading.text if heading is not None else ""
    return ModalContent(image=image or "", title=title or "", description=card.data("desc") or "")


class ScrollLock:
    """Page-level scroll lock. Only the modal controller that owns it mutates it."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def engaged(self) -> bool:
        return self._page.body.style.get("overflow") == "hidden"

    def engage(self) -> None:
        self._page.body.style["overflow"] = "hidden"

    def release(self) -> None:
        self._page.body.style.pop("overflow", None)


class ModalController:
    """`closed -> opening -> open -> closed` lifecycle for the gallery dialog.

    `open` goes through an `opening` state for one frame so the host can
    paint the dialog before the `active` class starts its transition. Scroll
    is locked exactly while the state is `open`.
    """

    def __init__(
        self,
        page: Page,
        modal: PageElement,
        scheduler: TaskScheduler,
        *,
        on_state_change: ModalCallback | None = None,
    ) -> None:
        self._page = page
        self._modal = modal
        self._scheduler = scheduler
        self._on_state_change = on_state_change or (lambda state, content: None)
        self._scroll_lock = ScrollLock(page)
        self._image = modal.find_descendant(element_id="modalImg") or modal.find_descendant(tag="img")
        self._title = modal.find_descendant(element_id="modalTitle")
        self._description = modal.find_descendant(element_id="modalDesc")
        self._close_button = modal.find_descendant(class_name="modal-close")
        self._state: ModalState = "closed"
        self._content = ModalContent()
        self._frame_task: ScheduledTask | None = None
        # A previous controller may have died with the page locked.
        self._scroll_lock.release()
        self._modal.remove_class(ACTIVE_CLASS)
        self._modal.set_attribute("aria-hidden", "true")

    @property
    def state(self) -> ModalState:
        return self._state

    @property
    def content(self) -> ModalContent:
        return self._content

    @property
    def element(self) -> PageElement:
        return self._modal

    @property
    def scroll_locked(self) -> bool:
        return self._scroll_lock.engaged

    def open(self, content: ModalContent) -> None:
        self._bind(content)
        if self._state in ("opening", "open"):
            return
        self._state = "opening"
        self._modal.set_attribute("aria-hidden", "false")
        self._frame_task = self._scheduler.request_frame(self._finish_open, name="modal:open")
        self._on_state_change(self._state, self._content)

    def close(self) -> None:
        if self._state == "closed":
            return
        if self._frame_task is not None:
            self._frame_task.cancel()
            self._frame_task = None
        self._state = "closed"
        self._modal.remove_class(ACTIVE_CLASS)
        self._modal.set_attribute("aria-hidden", "true")
        self._scroll_lock.release()
        if self._image is not None:
            self._image.set_attribute("src", "")
        self._content = ModalContent(title=self._content.title, description=self._content.description)
        self._on_state_change(self._state, self._content)

    def handle_click(self, target: PageElement | None) -> bool:
        """Close on the close control or on the backdrop itself. Returns True if handled."""

        if target is None or self._state == "closed":
            return False
        if target is self._modal or (self._close_button is not None and self._close_button.contains(target)):
            self.close()
            return True
        return False

    def handle_key(self, key: str | None) -> bool:
        if key != CANCEL_KEY or self._state == "closed":
            return False
        self.close()
        return True

    def _finish_open(self) -> None:
        self._frame_task = None
        if self._state != "opening":
            return
        self._state = "open"
        self._modal.add_class(ACTIVE_CLASS)
        self._scroll_lock.engage()
        self._on_state_change(self._state, self._content)

    def _bind(self, content: ModalContent) -> None:
        # Every field is overwritten so nothing from the previous card survives.
        self._content = content
        if self._image is not None:
            self._image.set_attribute("src", content.image or "")
        if self._title is not None:
            self._title.text = content.title or ""
        if self._description is not None:
            self._description.text = content.description or ""
