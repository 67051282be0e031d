from __future__ import annotations

from typing import Mapping

from vitrine_core.ui.element import PageElement
from vitrine_ui.feedback.toast import Toast

from .pipeline import StatusKind

CONTROL_TAGS = ("input", "textarea", "select")
STATUS_CLASS = "form-status"


class PageFormAdapter:
    """Exposes a `<form>` element's named controls to the submission pipeline.

    Status text goes to the form's `.form-status` element, or to the page
    toast when the form has none.
    """

    def __init__(self, form: PageElement, *, toast: Toast | None = None) -> None:
        self._form = form
        self._toast = toast

    @property
    def element(self) -> PageElement:
        return self._form

    def controls(self) -> dict[str, PageElement]:
        out: dict[str, PageElement] = {}
        for node in self._form.iter_tree():
            if node.tag not in CONTROL_TAGS:
                continue
            name = node.get_attribute("name")
            if name:
                out.setdefault(name, node)
        return out

    def values(self) -> Mapping[str, str]:
        return {name: control.value for name, control in self.controls().items()}

    def present_fields(self) -> set[str]:
        return set(self.controls())

    def status_element(self) -> PageElement | None:
        return self._form.find_descendant(class_name=STATUS_CLASS)

    def set_status(self, text: str, kind: StatusKind) -> None:
        status = self.status_element()
        if status is not None:
            status.text = text
            status.set_attribute("data-state", kind)
            return
        if self._toast is not None:
            self._toast.show(text)

    def reset(self) -> None:
        for control in self.controls().values():
            control.value = ""
