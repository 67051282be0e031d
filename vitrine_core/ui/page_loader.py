from __future__ import annotations

from pathlib import Path
import json
from typing import Any, Iterator

from .element import BoundingBox, PageElement


class CapabilityUnavailable(RuntimeError):
    """Raised when the host page cannot provide a browser-side capability."""


class Page:
    """In-memory page: element tree, viewport geometry, and navigation log."""

    def __init__(
        self,
        body: PageElement | None = None,
        *,
        viewport: BoundingBox | None = None,
        page_id: str = "page",
    ) -> None:
        self.page_id = page_id
        self.body = body or PageElement(element_id="body", tag="body")
        self._viewport = viewport
        self.navigations: list[str] = []

    @property
    def scroll_y(self) -> float:
        return 0.0 if self._viewport is None else self._viewport.y

    @property
    def has_viewport(self) -> bool:
        return self._viewport is not None

    def viewport_rect(self) -> BoundingBox:
        if self._viewport is None:
            raise CapabilityUnavailable("page does not report viewport geometry")
        return self._viewport

    def scroll_to(self, y: float) -> None:
        if self._viewport is None:
            return
        self._viewport = BoundingBox(self._viewport.x, max(0.0, float(y)), self._viewport.width, self._viewport.height)

    def resize(self, width: float, height: float) -> None:
        x, y = (0.0, 0.0) if self._viewport is None else (self._viewport.x, self._viewport.y)
        self._viewport = BoundingBox(x, y, float(width), float(height))

    def navigate(self, uri: str) -> None:
        self.navigations.append(uri)

    def elements(self) -> Iterator[PageElement]:
        return self.body.iter_tree()

    def get(self, element_id: str) -> PageElement | None:
        for node in self.elements():
            if node.element_id == element_id:
                return node
        return None

    def query_class(self, *class_names: str) -> list[PageElement]:
        wanted = set(class_names)
        return [node for node in self.elements() if node.classes & wanted]

    def query_attribute(self, name: str) -> list[PageElement]:
        return [node for node in self.elements() if name in node.attributes]

    def query_tag(self, tag: str) -> list[PageElement]:
        return [node for node in self.elements() if node.tag == tag]

    def create_element(self, element_id: str, *, tag: str = "div", classes: set[str] | None = None) -> PageElement:
        return self.body.append(PageElement(element_id=element_id, tag=tag, classes=set(classes or ())))


def load_page(page_dir: Path) -> Page:
    page_path = page_dir / "page.json"
    data = json.loads(page_path.read_text(encoding="utf-8"))
    return page_from_mapping(data, default_id=page_dir.name)


def page_from_mapping(data: dict[str, Any], *, default_id: str = "page") -> Page:
    raw_viewport = data.get("viewport")
    viewport = None
    if isinstance(raw_viewport, dict):
        viewport = BoundingBox(
            x=0.0,
            y=float(raw_viewport.get("scroll_y", 0.0)),
            width=float(raw_viewport.get("width", 1280)),
            height=float(raw_viewport.get("height", 720)),
        )
    body = PageElement(element_id="body", tag="body")
    seen: set[str] = set()
    for index, raw in enumerate(data.get("elements", [])):
        body.append(_element_from_mapping(raw, f"el{index}", seen))
    return Page(body, viewport=viewport, page_id=str(data.get("page_id", default_id)))


def _element_from_mapping(raw: dict[str, Any], fallback_id: str, seen: set[str]) -> PageElement:
    if not isinstance(raw, dict):
        raise ValueError(f"page element must be an object: {fallback_id}")
    element_id = str(raw.get("id", fallback_id))
    if element_id in seen:
        raise ValueError(f"duplicate element id: {element_id}")
    seen.add(element_id)
    classes = raw.get("classes", [])
    if isinstance(classes, str):
        classes = classes.split()
    attributes = {str(k): str(v) for k, v in dict(raw.get("attrs", {})).items()}
    element = PageElement(
        element_id=element_id,
        tag=str(raw.get("tag", "div")),
        classes={str(c) for c in classes},
        attributes=attributes,
        text=str(raw.get("text", "")),
        value=str(raw.get("value", "")),
        rect=_parse_rect(raw.get("rect")),
    )
    for index, child in enumerate(raw.get("children", [])):
        element.append(_element_from_mapping(child, f"{element_id}.{index}", seen))
    return element


def _parse_rect(raw: object) -> BoundingBox | None:
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)) and len(raw) == 4:
        return BoundingBox(*(float(v) for v in raw))
    if isinstance(raw, dict):
        return BoundingBox(
            x=float(raw.get("x", 0.0)),
            y=float(raw.get("y", 0.0)),
            width=float(raw.get("width", 0.0)),
            height=float(raw.get("height", 0.0)),
        )
    raise ValueError(f"invalid element rect: {raw!r}")
