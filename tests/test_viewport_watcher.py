from __future__ import annotations

import unittest

import numpy as np

from vitrine_core.ui.element import BoundingBox, PageElement
from vitrine_core.ui.page_loader import Page
from vitrine_ui.reveal.viewport import ViewportWatcher, intersection_ratios


def _page(*elements: PageElement, viewport: BoundingBox | None = BoundingBox(0, 0, 1000, 1000)) -> Page:
    page = Page(viewport=viewport)
    for element in elements:
        page.body.append(element)
    return page


class IntersectionRatioTests(unittest.TestCase):
    def test_ratios_for_inside_partial_outside_and_zero_area(self) -> None:
        rects = np.array(
            [
                [0, 0, 100, 100],
                [0, 950, 100, 100],
                [0, 2000, 100, 100],
                [10, 10, 0, 0],
            ],
            dtype=np.float64,
        )
        ratios = intersection_ratios(rects, BoundingBox(0, 0, 1000, 1000))
        self.assertAlmostEqual(float(ratios[0]), 1.0)
        self.assertAlmostEqual(float(ratios[1]), 0.5)
        self.assertAlmostEqual(float(ratios[2]), 0.0)
        self.assertAlmostEqual(float(ratios[3]), 1.0)

    def test_empty_input(self) -> None:
        self.assertEqual(intersection_ratios(np.zeros((0, 4)), BoundingBox(0, 0, 1, 1)).shape, (0,))


class ViewportWatcherTests(unittest.TestCase):
    def test_notifies_once_when_threshold_met_then_stops_observing(self) -> None:
        element = PageElement("a", rect=BoundingBox(0, 1500, 100, 100))
        page = _page(element)
        seen: list[str] = []
        watcher = ViewportWatcher(page, lambda e: seen.append(e.element_id), threshold=0.12, root_margin=0.0)
        watcher.observe(element)
        self.assertEqual(watcher.check(), [])

        page.scroll_to(600)
        self.assertEqual(watcher.check(), ["a"])
        self.assertFalse(watcher.is_observing(element))
        page.scroll_to(0)
        page.scroll_to(600)
        self.assertEqual(watcher.check(), [])
        self.assertEqual(seen, ["a"])

    def test_below_threshold_does_not_notify(self) -> None:
        element = PageElement("a", rect=BoundingBox(0, 990, 100, 100))
        watcher = ViewportWatcher(_page(element), lambda e: None, threshold=0.12, root_margin=0.0)
        watcher.observe(element)
        self.assertEqual(watcher.check(), [])
        self.assertTrue(watcher.is_observing(element))

    def test_root_margin_pre_triggers_below_the_fold(self) -> None:
        element = PageElement("a", rect=BoundingBox(0, 1020, 100, 100))
        seen: list[str] = []
        watcher = ViewportWatcher(_page(element), lambda e: seen.append(e.element_id), threshold=0.12, root_margin=0.12)
        watcher.observe(element)
        self.assertEqual(watcher.check(), ["a"])

    def test_missing_viewport_fails_open_on_observe(self) -> None:
        element = PageElement("a", rect=BoundingBox(0, 5000, 10, 10))
        seen: list[str] = []
        watcher = ViewportWatcher(_page(element, viewport=None), lambda e: seen.append(e.element_id))
        with self.assertLogs("vitrine_ui.reveal.viewport", level="WARNING"):
            watcher.observe(element)
        self.assertEqual(seen, ["a"])
        self.assertEqual(watcher.observed_ids(), [])

    def test_element_without_rect_fails_open(self) -> None:
        element = PageElement("a")
        seen: list[str] = []
        watcher = ViewportWatcher(_page(element), lambda e: seen.append(e.element_id))
        with self.assertLogs("vitrine_ui.reveal.viewport", level="WARNING"):
            watcher.observe(element)
        self.assertEqual(seen, ["a"])

    def test_visible_now_reports_any_intersection_without_notifying(self) -> None:
        sliver = PageElement("sliver", rect=BoundingBox(0, 995, 100, 100))
        away = PageElement("away", rect=BoundingBox(0, 5000, 100, 100))
        seen: list[str] = []
        watcher = ViewportWatcher(_page(sliver, away), lambda e: seen.append(e.element_id), root_margin=0.0)
        watcher.observe(sliver)
        watcher.observe(away)
        self.assertEqual([e.element_id for e in watcher.visible_now()], ["sliver"])
        self.assertEqual(seen, [])

    def test_callback_error_still_unobserves(self) -> None:
        element = PageElement("a", rect=BoundingBox(0, 0, 10, 10))
        page = _page(element)

        def boom(_: PageElement) -> None:
            raise RuntimeError("boom")

        watcher = ViewportWatcher(page, boom)
        with self.assertRaises(RuntimeError):
            watcher.observe(element)
            watcher.check()
        self.assertFalse(watcher.is_observing(element))

    def test_rejects_invalid_threshold(self) -> None:
        with self.assertRaises(ValueError):
            ViewportWatcher(_page(), lambda e: None, threshold=1.5)


if __name__ == "__main__":
    unittest.main()
