from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("BoundingBox width/height must be >= 0")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.bottom

    def offset(self, dx: float = 0.0, dy: float = 0.0) -> "BoundingBox":
        return BoundingBox(self.x + dx, self.y + dy, self.width, self.height)


@dataclass(eq=False)
class PageElement:
    """Mutable stand-in for a rendered page node.

    `rect` is the element's layout box in document coordinates; `None` means
    the host could not report layout for it.
    """

    element_id: str
    tag: str = "div"
    classes: set[str] = field(default_factory=set)
    attributes: dict[str, str] = field(default_factory=dict)
    style: dict[str, str] = field(default_factory=dict)
    text: str = ""
    value: str = ""
    rect: Optional[BoundingBox] = None
    children: list["PageElement"] = field(default_factory=list)
    parent: Optional["PageElement"] = field(default=None, repr=False)

    def append(self, child: "PageElement") -> "PageElement":
        if child.parent is not None and child in child.parent.children:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def add_class(self, name: str) -> None:
        self.classes.add(name)

    def remove_class(self, name: str) -> None:
        self.classes.discard(name)

    def toggle_class(self, name: str, force: bool | None = None) -> bool:
        active = (name not in self.classes) if force is None else bool(force)
        if active:
            self.classes.add(name)
        else:
            self.classes.discard(name)
        return active

    def get_attribute(self, name: str, default: str | None = None) -> str | None:
        return self.attributes.get(name, default)

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = str(value)

    def remove_attribute(self, name: str) -> None:
        self.attributes.pop(name, None)

    def data(self, key: str, default: str | None = None) -> str | None:
        return self.attributes.get(f"data-{key}", default)

    def contains(self, other: "PageElement | None") -> bool:
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def iter_tree(self) -> Iterator["PageElement"]:
        yield self
        for child in self.children:
            yield from child.iter_tree()

    def find_descendant(self, *, element_id: str | None = None, tag: str | None = None,
                        class_name: str | None = None) -> "PageElement | None":
        for node in self.iter_tree():
            if node is self:
                continue
            if element_id is not None and node.element_id != element_id:
                continue
            if tag is not None and node.tag != tag:
                continue
            if class_name is not None and class_name not in node.classes:
                continue
            return node
        return None
