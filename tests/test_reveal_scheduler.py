from __future__ import annotations

import unittest

from vitrine_core.core.task_scheduler import ManualClock, TaskScheduler
from vitrine_core.ui.element import BoundingBox, PageElement
from vitrine_core.ui.page_loader import Page
from vitrine_ui.reveal.scheduler import REVEALED_CLASS, RevealScheduler, RevealTarget
from vitrine_ui.reveal.viewport import ViewportWatcher


class _Harness:
    def __init__(self, viewport: BoundingBox | None = BoundingBox(0, 0, 1000, 800)) -> None:
        self.clock = ManualClock()
        self.scheduler = TaskScheduler(clock=self.clock)
        self.page = Page(viewport=viewport)
        self.revealed: list[str] = []
        self.reveal = RevealScheduler(
            self.scheduler,
            stagger_unit_ms=100,
            sweep_delay_ms=150,
            on_revealed=lambda e: self.revealed.append(e.element_id),
        )
        self.watcher = ViewportWatcher(self.page, self.reveal.on_viewport_enter, threshold=0.12, root_margin=0.0)
        self.reveal.attach_watcher(self.watcher)

    def add(self, element_id: str, y: float, **attrs: str) -> PageElement:
        element = PageElement(element_id, rect=BoundingBox(0, y, 500, 200), attributes=dict(attrs))
        self.page.body.append(element)
        return element

    def run_for(self, ms: float) -> None:
        end = self.clock() + ms
        while self.clock() < end:
            self.clock.advance(min(10.0, end - self.clock()))
            self.scheduler.tick()


class RevealTargetTests(unittest.TestCase):
    def test_effective_delay_prefers_explicit_delay_over_stagger(self) -> None:
        element = PageElement("a")
        self.assertEqual(RevealTarget(element, delay_ms=250, stagger_index=3).effective_delay_ms(80), 250)
        self.assertEqual(RevealTarget(element, stagger_index=3).effective_delay_ms(80), 240)
        self.assertEqual(RevealTarget(element).effective_delay_ms(80), 0)


class RevealSchedulerTests(unittest.TestCase):
    def test_element_in_view_at_start_reveals_immediately(self) -> None:
        h = _Harness()
        hero = h.add("hero", 0)
        h.reveal.register(hero)
        h.reveal.start()
        self.assertIn(REVEALED_CLASS, hero.classes)
        self.assertEqual(h.revealed, ["hero"])

    def test_delay_is_applied_after_viewport_entry(self) -> None:
        h = _Harness()
        about = h.add("about", 1200, **{"data-delay": "200"})
        h.reveal.register(about)
        h.reveal.start()
        h.page.scroll_to(900)
        h.watcher.check()
        h.run_for(190)
        self.assertNotIn(REVEALED_CLASS, about.classes)
        h.run_for(20)
        self.assertIn(REVEALED_CLASS, about.classes)

    def test_stagger_index_spaces_out_reveals(self) -> None:
        h = _Harness()
        cards = [h.add(f"card-{i}", 1200) for i in range(3)]
        for i, card in enumerate(cards):
            h.reveal.register(card, stagger_index=i)
        h.reveal.start()
        h.page.scroll_to(900)
        h.watcher.check()
        self.assertEqual(h.revealed, ["card-0"])
        h.run_for(100)
        self.assertEqual(h.revealed, ["card-0", "card-1"])
        h.run_for(100)
        self.assertEqual(h.revealed, ["card-0", "card-1", "card-2"])

    def test_reveal_happens_at_most_once(self) -> None:
        h = _Harness()
        element = h.add("a", 0)
        h.reveal.register(element)
        h.reveal.start()
        h.reveal.on_viewport_enter(element)
        h.reveal.sweep()
        h.run_for(500)
        self.assertEqual(h.revealed, ["a"])
        self.assertFalse(h.reveal.register(element))
        self.assertEqual(h.reveal.pending_ids, set())

    def test_startup_sweep_reveals_missed_visible_elements(self) -> None:
        h = _Harness()
        # Only a sliver is visible, below the notification threshold.
        element = h.add("sliver", 790)
        h.reveal.register(element)
        h.reveal.start()
        self.assertEqual(h.revealed, [])
        h.run_for(150)
        self.assertEqual(h.revealed, ["sliver"])

    def test_sweep_skips_elements_already_scheduled(self) -> None:
        h = _Harness()
        element = h.add("slow", 0, **{"data-delay": "400"})
        h.reveal.register(element)
        h.reveal.start()
        self.assertEqual(h.reveal.sweep(), 0)
        h.run_for(390)
        self.assertEqual(h.revealed, [])
        h.run_for(20)
        self.assertEqual(h.revealed, ["slow"])

    def test_no_viewport_reveals_everything_on_register(self) -> None:
        h = _Harness(viewport=None)
        elements = [h.add(f"e{i}", 5000 * i) for i in range(3)]
        with self.assertLogs("vitrine_ui.reveal.viewport", level="WARNING"):
            for element in elements:
                h.reveal.register(element)
        self.assertEqual(h.revealed, ["e0", "e1", "e2"])

    def test_teardown_cancels_pending_reveals(self) -> None:
        h = _Harness()
        element = h.add("a", 0, **{"data-delay": "300"})
        h.reveal.register(element)
        h.reveal.start()
        h.reveal.teardown()
        h.run_for(1000)
        self.assertEqual(h.revealed, [])
        self.assertEqual(h.scheduler.pending_count(), 0)

    def test_non_numeric_delay_attribute_is_ignored(self) -> None:
        h = _Harness()
        element = h.add("a", 0, **{"data-delay": "soon"})
        with self.assertLogs("vitrine_ui.reveal.scheduler", level="WARNING"):
            h.reveal.register(element)
        h.reveal.start()
        self.assertEqual(h.revealed, ["a"])

    def test_non_finite_stagger_and_delay_attributes_are_ignored(self) -> None:
        h = _Harness()
        elements = [
            h.add("nan-stagger", 0, **{"data-stagger": "nan"}),
            h.add("inf-stagger", 0, **{"data-stagger": "inf"}),
            h.add("inf-delay", 0, **{"data-delay": "-inf"}),
        ]
        for element in elements:
            with self.assertLogs("vitrine_ui.reveal.scheduler", level="WARNING"):
                self.assertTrue(h.reveal.register(element))
        h.reveal.start()
        self.assertEqual(sorted(h.revealed), ["inf-delay", "inf-stagger", "nan-stagger"])


if __name__ == "__main__":
    unittest.main()
