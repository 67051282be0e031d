from __future__ import annotations

import logging
from typing import Callable

import numpy as np

from vitrine_core.ui.element import BoundingBox, PageElement
from vitrine_core.ui.page_loader import CapabilityUnavailable, Page

LOGGER = logging.getLogger(__name__)

EnterCallback = Callable[[PageElement], None]


def intersection_ratios(rects: np.ndarray, viewport: BoundingBox) -> np.ndarray:
    """Visible fraction of each `[x, y, w, h]` row inside `viewport`.

    Zero-area rows score 1.0 when their origin lies inside the viewport and
    0.0 otherwise.
    """

    if rects.size == 0:
        return np.zeros((0,), dtype=np.float64)
    x0 = rects[:, 0]
    y0 = rects[:, 1]
    x1 = x0 + rects[:, 2]
    y1 = y0 + rects[:, 3]
    overlap_w = np.clip(np.minimum(x1, viewport.right) - np.maximum(x0, viewport.x), 0.0, None)
    overlap_h = np.clip(np.minimum(y1, viewport.bottom) - np.maximum(y0, viewport.y), 0.0, None)
    area = rects[:, 2] * rects[:, 3]
    safe_area = np.where(area > 0.0, area, 1.0)
    ratios = np.where(area > 0.0, (overlap_w * overlap_h) / safe_area, 0.0)
    origin_inside = (
        (x0 >= viewport.x) & (x0 <= viewport.right) & (y0 >= viewport.y) & (y0 <= viewport.bottom)
    )
    return np.where((area <= 0.0) & origin_inside, 1.0, ratios)


class ViewportWatcher:
    """One-shot visibility notifications for observed page elements.

    The viewport is extended downwards by `root_margin * viewport height`, so
    elements fire slightly before they scroll into view. Each element is
    reported once and then dropped. When the page cannot report geometry the
    watcher fails open and reports everything it observes.
    """

    def __init__(
        self,
        page: Page,
        on_enter: EnterCallback,
        *,
        threshold: float = 0.12,
        root_margin: float = 0.12,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        if root_margin < 0.0:
            raise ValueError("root_margin must be >= 0")
        self._page = page
        self._on_enter = on_enter
        self._threshold = float(threshold)
        self._root_margin = float(root_margin)
        self._observed: dict[str, PageElement] = {}
        self._capability_warned = False

    @property
    def threshold(self) -> float:
        return self._threshold

    def observed_ids(self) -> list[str]:
        return list(self._observed)

    def is_observing(self, element: PageElement) -> bool:
        return element.element_id in self._observed

    def observe(self, element: PageElement) -> None:
        if element.element_id in self._observed:
            return
        self._observed[element.element_id] = element
        if self._viewport() is None:
            self._notify([element])
        elif element.rect is None:
            self._warn_capability(f"element {element.element_id} reports no layout rect")
            self._notify([element])

    def unobserve(self, element: PageElement) -> None:
        self._observed.pop(element.element_id, None)

    def disconnect(self) -> None:
        self._observed.clear()

    def check(self) -> list[str]:
        """Notify every observed element that now meets the threshold."""

        if not self._observed:
            return []
        hits = self._crossing(self._threshold)
        self._notify(hits)
        return [element.element_id for element in hits]

    def visible_now(self) -> list[PageElement]:
        """Observed elements intersecting the viewport at all, without notifying."""

        return self._crossing(0.0)

    def _crossing(self, threshold: float) -> list[PageElement]:
        elements = list(self._observed.values())
        viewport = self._viewport()
        if viewport is None:
            return elements
        measured = [element for element in elements if element.rect is not None]
        unmeasured = [element for element in elements if element.rect is None]
        if unmeasured:
            self._warn_capability(f"{len(unmeasured)} element(s) report no layout rect")
        if not measured:
            return unmeasured
        rects = np.array(
            [[e.rect.x, e.rect.y, e.rect.width, e.rect.height] for e in measured if e.rect is not None],
            dtype=np.float64,
        )
        ratios = intersection_ratios(rects, viewport)
        hit_mask = ratios > 0.0
        if threshold > 0.0:
            hit_mask &= ratios >= threshold
        hits = [element for element, hit in zip(measured, hit_mask) if bool(hit)]
        # Fail open per element: no rect means we cannot tell, so it counts as visible.
        return hits + unmeasured

    def _notify(self, elements: list[PageElement]) -> None:
        for element in elements:
            if element.element_id not in self._observed:
                continue
            try:
                self._on_enter(element)
            finally:
                self._observed.pop(element.element_id, None)

    def _viewport(self) -> BoundingBox | None:
        try:
            viewport = self._page.viewport_rect()
        except CapabilityUnavailable as exc:
            self._warn_capability(str(exc))
            return None
        margin = viewport.height * self._root_margin
        return BoundingBox(viewport.x, viewport.y, viewport.width, viewport.height + margin)

    def _warn_capability(self, reason: str) -> None:
        if self._capability_warned:
            return
        self._capability_warned = True
        LOGGER.warning("visibility detection unavailable (%s); revealing elements immediately", reason)
