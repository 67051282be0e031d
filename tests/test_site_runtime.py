from __future__ import annotations

import unittest

from vitrine_core.core.config import FormConfig, SiteConfig
from vitrine_core.core.events import InputEvent
from vitrine_core.core.task_scheduler import ManualClock, TaskScheduler
from vitrine_core.ui.element import PageElement
from vitrine_core.ui.page_loader import Page, page_from_mapping
from vitrine_ui.contact.delivery import TransportResult
from vitrine_ui.contact.pipeline import STATUS_SENT
from vitrine_ui.site_runtime import PAGE_LOADED_CLASS, SiteController


def _page_data(*, with_status: bool = True) -> dict[str, object]:
    form_children = [
        {"id": "f-name", "tag": "input", "attrs": {"name": "name"}, "value": "Ada"},
        {"id": "f-email", "tag": "input", "attrs": {"name": "email"}, "value": "ada@example.org"},
        {"id": "f-message", "tag": "textarea", "attrs": {"name": "message"}, "value": "Hello"},
        {"id": "f-submit", "tag": "button"},
    ]
    if with_status:
        form_children.append({"id": "f-status", "tag": "p", "classes": ["form-status"]})
    return {
        "viewport": {"width": 1000, "height": 800},
        "elements": [
            {"id": "hero", "classes": ["reveal"], "rect": [0, 0, 1000, 500]},
            {"id": "about", "attrs": {"data-animate": "fade"}, "rect": [0, 1500, 1000, 400]},
            {
                "id": "card",
                "classes": ["project-card"],
                "attrs": {"data-img": "a.jpg", "data-title": "Loft", "data-desc": "Warehouse"},
                "rect": [0, 2500, 400, 300],
                "children": [{"id": "card-caption", "tag": "span"}],
            },
            {
                "id": "projectModal",
                "classes": ["project-modal"],
                "children": [
                    {"id": "modal-close", "tag": "button", "classes": ["modal-close"]},
                    {"id": "modalImg", "tag": "img"},
                    {"id": "modalTitle", "tag": "h3"},
                    {"id": "modalDesc", "tag": "p"},
                ],
            },
            {"id": "contact", "tag": "form", "classes": ["contact-form"], "children": form_children},
        ],
    }


class _ScriptedTransport:
    def __init__(self, result: TransportResult) -> None:
        self.result = result
        self.calls = 0

    def deliver(self, endpoint_url, payload, timeout_s) -> TransportResult:
        self.calls += 1
        return self.result


class SiteControllerTests(unittest.TestCase):
    def _controller(
        self,
        page: Page | None = None,
        *,
        config: SiteConfig | None = None,
        transport: _ScriptedTransport | None = None,
    ) -> SiteController:
        self.clock = ManualClock()
        self.audit: list[dict[str, object]] = []
        self.page = page or page_from_mapping(_page_data())
        return SiteController(
            self.page,
            config=config or SiteConfig(form=FormConfig("hello@studio.example")),
            scheduler=TaskScheduler(clock=self.clock),
            transport=transport,
            audit_logger=self.audit.append,
        )

    def _advance(self, controller: SiteController, ms: float) -> None:
        end = self.clock() + ms
        while self.clock() < end:
            self.clock.advance(min(16.0, end - self.clock()))
            controller.tick()

    def test_init_discovers_components_and_marks_page_loaded(self) -> None:
        controller = self._controller()
        controller.init()
        self.assertIsNotNone(controller.modal)
        self.assertEqual(controller.reveal.revealed_ids, {"hero"})
        self.assertEqual(controller.reveal.pending_ids, {"about"})
        self.assertFalse(self.page.body.has_class(PAGE_LOADED_CLASS))
        self._advance(controller, 100)
        self.assertTrue(self.page.body.has_class(PAGE_LOADED_CLASS))
        self.assertIsNone(controller.last_error)

    def test_scroll_bursts_collapse_into_one_visibility_check(self) -> None:
        controller = self._controller()
        controller.init()
        for y in (400, 800, 1200):
            controller.dispatch(InputEvent("scroll", timestamp=0, scroll_y=y))
        self.assertNotIn("about", controller.reveal.revealed_ids)
        self.assertEqual(controller.tick(), 1)
        self.assertIn("about", controller.reveal.revealed_ids)

    def test_card_click_opens_modal_and_escape_closes_it(self) -> None:
        controller = self._controller()
        controller.init()
        controller.dispatch(InputEvent("click", timestamp=0, target_id="card-caption"))
        assert controller.modal is not None
        self.assertEqual(controller.modal.state, "opening")
        controller.tick()
        self.assertEqual(controller.modal.state, "open")
        self.assertTrue(controller.modal.scroll_locked)
        self.assertEqual(self.page.get("modalTitle").text, "Loft")
        controller.dispatch(InputEvent("key_down", timestamp=0, key="Escape"))
        self.assertEqual(controller.modal.state, "closed")
        self.assertFalse(controller.modal.scroll_locked)
        modal_actions = [e["action"] for e in self.audit if e["component"] == "modal"]
        self.assertEqual(modal_actions, ["modal_opening", "modal_open", "modal_closed"])

    def test_backdrop_and_close_button_clicks_close_modal(self) -> None:
        controller = self._controller()
        controller.init()
        assert controller.modal is not None
        for target in ("projectModal", "modal-close"):
            controller.dispatch(InputEvent("click", timestamp=0, target_id="card"))
            controller.tick()
            controller.dispatch(InputEvent("click", timestamp=0, target_id=target))
            self.assertEqual(controller.modal.state, "closed")
        controller.dispatch(InputEvent("click", timestamp=0, target_id="modalTitle"))
        self.assertEqual(controller.modal.state, "closed")

    def test_submit_from_inner_button_defers_to_mail_navigation(self) -> None:
        controller = self._controller()
        controller.init()
        controller.dispatch(InputEvent("submit", timestamp=0, target_id="f-submit"))
        self.assertEqual([o.kind for o in controller.outcomes], ["deferred"])
        self.assertEqual(len(self.page.navigations), 1)
        self.assertTrue(self.page.navigations[0].startswith("mailto:hello@studio.example?"))
        self.assertEqual(self.page.get("f-name").value, "")
        self.assertEqual(self.page.get("f-status").get_attribute("data-state"), "info")

    def test_primary_success_without_status_element_uses_toast(self) -> None:
        transport = _ScriptedTransport(TransportResult(ok=True, status=200))
        controller = self._controller(
            page_from_mapping(_page_data(with_status=False)),
            config=SiteConfig(form=FormConfig("hello@studio.example", endpoint_url="https://forms.example")),
            transport=transport,
        )
        controller.init()
        outcome = controller.submit(self.page.get("f-submit"))
        assert outcome is not None
        self.assertEqual(outcome.kind, "sent")
        self.assertEqual(transport.calls, 1)
        self.assertEqual(self.page.navigations, [])
        self.assertTrue(controller.toast.visible)
        self.assertEqual(controller.toast.element.text, STATUS_SENT)

    def test_forms_without_form_config_stay_unbound(self) -> None:
        controller = self._controller(config=SiteConfig())
        with self.assertLogs("vitrine_ui.site_runtime", level="WARNING"):
            controller.init()
        self.assertIsNone(controller.submit(self.page.get("f-submit")))
        with self.assertRaises(ValueError):
            controller.bind_form(self.page.get("contact"))

    def test_page_without_viewport_reveals_everything(self) -> None:
        data = _page_data()
        del data["viewport"]
        controller = self._controller(page_from_mapping(data))
        controller.init()
        self.assertEqual(controller.reveal.revealed_ids, {"hero", "about"})

    def test_non_finite_stagger_does_not_stop_init(self) -> None:
        data = _page_data()
        data["elements"][0]["attrs"] = {"data-stagger": "nan"}
        controller = self._controller(page_from_mapping(data))
        with self.assertLogs("vitrine_ui.reveal.scheduler", level="WARNING"):
            controller.init()
        self.assertIsNone(controller.last_error)
        self.assertIn("hero", controller.reveal.revealed_ids)
        self.assertIsNotNone(controller.modal)
        self._advance(controller, 100)
        self.assertTrue(self.page.body.has_class(PAGE_LOADED_CLASS))

    def test_init_failure_is_logged_and_recorded(self) -> None:
        controller = self._controller(Page())

        def broken(*_args: object) -> list[PageElement]:
            raise RuntimeError("query failed")

        self.page.query_class = broken  # type: ignore[method-assign]
        with self.assertLogs("vitrine_ui.site_runtime", level="ERROR"):
            controller.init()
        self.assertIsInstance(controller.last_error, RuntimeError)

    def test_teardown_cancels_pending_reveals(self) -> None:
        controller = self._controller()
        controller.init()
        controller.teardown()
        self.assertEqual(controller.scheduler.pending_count(), 1)
        controller.dispatch(InputEvent("scroll", timestamp=0, scroll_y=1200))
        controller.tick()
        self.assertNotIn("about", controller.reveal.revealed_ids)


if __name__ == "__main__":
    unittest.main()
