from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Iterable

from vitrine_core.core.audit import AuditLogger, audit_entry
from vitrine_core.core.config import FormConfig, SiteConfig
from vitrine_core.core.events import InputEvent
from vitrine_core.core.task_scheduler import FrameThrottle, ManualClock, TaskScheduler
from vitrine_core.ui.element import PageElement
from vitrine_core.ui.page_loader import Page

from .contact.delivery import FormTransport, MailComposeRequest, MailHandoff
from .contact.page_form import PageFormAdapter
from .contact.pipeline import DeliveryOutcome, FormSubmissionPipeline
from .feedback.toast import Toast
from .modal.controller import ModalContent, ModalController, ModalState, content_from_card
from .reveal.scheduler import RevealScheduler
from .reveal.viewport import ViewportWatcher

LOGGER = logging.getLogger(__name__)

REVEAL_CLASSES = ("reveal", "reveal-up")
REVEAL_ATTRIBUTE = "data-animate"
CARD_CLASSES = ("portfolio-item", "project-card")
MODAL_CLASS = "project-modal"
MODAL_ID = "projectModal"
FORM_CLASS = "contact-form"
PAGE_LOADED_CLASS = "page-loaded"


@dataclass
class _FormBinding:
    adapter: PageFormAdapter
    pipeline: FormSubmissionPipeline
    config: FormConfig


class SiteController:
    """Wires reveal, gallery modal and contact forms onto one page.

    The three components never share state; the controller only routes input
    events to them and pumps the shared task scheduler.
    """

    def __init__(
        self,
        page: Page,
        *,
        config: SiteConfig | None = None,
        scheduler: TaskScheduler | None = None,
        transport: FormTransport | None = None,
        mail_handoff: MailHandoff | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self.page = page
        self.config = config or SiteConfig()
        self.scheduler = scheduler or TaskScheduler()
        self._transport = transport
        self._mail_handoff = mail_handoff or self._navigate_to_mail
        self._audit_logger = audit_logger
        self.toast = Toast(page, self.scheduler, duration_ms=self.config.toast.duration_ms)
        reveal_cfg = self.config.reveal
        self.reveal = RevealScheduler(
            self.scheduler,
            stagger_unit_ms=reveal_cfg.stagger_unit_ms,
            sweep_delay_ms=reveal_cfg.sweep_delay_ms,
            on_revealed=self._on_revealed,
        )
        self.watcher = ViewportWatcher(
            page,
            self.reveal.on_viewport_enter,
            threshold=reveal_cfg.threshold,
            root_margin=reveal_cfg.root_margin,
        )
        self.reveal.attach_watcher(self.watcher)
        self.modal: ModalController | None = None
        self.outcomes: list[DeliveryOutcome] = []
        self._cards: dict[str, ModalContent | None] = {}
        self._forms: dict[str, _FormBinding] = {}
        self._visibility_throttle = FrameThrottle(self.scheduler, self.watcher.check, name="reveal:check")
        self._initialized = False
        self._last_error: Exception | None = None

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    def init(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        try:
            self._discover_modal()
            for element in self._discover_reveal_targets():
                self.register_reveal_target(element)
            for card in self.page.query_class(*CARD_CLASSES):
                self.bind_gallery_card(card)
            self._discover_forms()
            self.reveal.start()
            self.scheduler.call_later(
                self.config.page_loaded_delay_ms,
                lambda: self.page.body.add_class(PAGE_LOADED_CLASS),
                name="page:loaded",
            )
        except Exception as exc:  # noqa: BLE001
            self._last_error = exc
            LOGGER.exception("site initialization failed")

    def register_reveal_target(
        self,
        element: PageElement,
        delay_ms: float | None = None,
        stagger_index: int | None = None,
    ) -> bool:
        return self.reveal.register(element, delay_ms=delay_ms, stagger_index=stagger_index)

    def bind_gallery_card(self, element: PageElement, content: ModalContent | None = None) -> None:
        self._cards[element.element_id] = content

    def bind_form(self, form: PageElement, config: FormConfig | None = None) -> PageFormAdapter:
        config = config or self.config.form
        if config is None:
            raise ValueError(f"form {form.element_id} needs a fallback address (no [form] config)")
        adapter = PageFormAdapter(form, toast=self.toast)
        pipeline = FormSubmissionPipeline(
            config,
            mail_handoff=self._mail_handoff,
            transport=self._transport,
            audit_logger=self._audit_logger,
            on_outcome=self.outcomes.append,
        )
        self._forms[form.element_id] = _FormBinding(adapter=adapter, pipeline=pipeline, config=config)
        return adapter

    def dispatch(self, event: InputEvent) -> None:
        if event.event_type == "click":
            self._handle_click(self._lookup(event.target_id))
        elif event.event_type == "key_down":
            if self.modal is not None:
                self.modal.handle_key(event.key)
        elif event.event_type == "scroll":
            if event.scroll_y is not None:
                self.page.scroll_to(event.scroll_y)
            self._visibility_throttle.trigger()
        elif event.event_type == "resize":
            if event.width is not None and event.height is not None:
                self.page.resize(event.width, event.height)
            self._visibility_throttle.trigger()
        elif event.event_type == "submit":
            self.submit(self._lookup(event.target_id))

    def submit(self, target: PageElement | None) -> DeliveryOutcome | None:
        binding = self._binding_for(target)
        if binding is None:
            LOGGER.debug("submit on unbound element %s", None if target is None else target.element_id)
            return None
        return binding.pipeline.submit(binding.adapter, binding.config)

    def tick(self, now_ms: float | None = None) -> int:
        return self.scheduler.tick(now_ms)

    def teardown(self) -> None:
        self.reveal.teardown()
        self._visibility_throttle.cancel()
        if self.modal is not None:
            self.modal.close()
        self.toast.hide()

    def _handle_click(self, target: PageElement | None) -> None:
        if target is None:
            return
        if self.modal is not None and self.modal.handle_click(target):
            return
        card = self._card_for(target)
        if card is None or self.modal is None:
            return
        content = self._cards.get(card.element_id) or content_from_card(card)
        self.modal.open(content)

    def _card_for(self, target: PageElement) -> PageElement | None:
        node: PageElement | None = target
        while node is not None:
            if node.element_id in self._cards:
                return node
            node = node.parent
        return None

    def _binding_for(self, target: PageElement | None) -> _FormBinding | None:
        node = target
        while node is not None:
            binding = self._forms.get(node.element_id)
            if binding is not None:
                return binding
            node = node.parent
        return None

    def _lookup(self, element_id: str | None) -> PageElement | None:
        if element_id is None:
            return None
        return self.page.get(element_id)

    def _discover_reveal_targets(self) -> list[PageElement]:
        seen: set[str] = set()
        out: list[PageElement] = []
        for element in self.page.query_attribute(REVEAL_ATTRIBUTE) + self.page.query_class(*REVEAL_CLASSES):
            if element.element_id in seen:
                continue
            seen.add(element.element_id)
            out.append(element)
        return out

    def _discover_modal(self) -> None:
        candidates = self.page.query_class(MODAL_CLASS)
        modal = candidates[0] if candidates else self.page.get(MODAL_ID)
        if modal is None:
            return
        self.modal = ModalController(self.page, modal, self.scheduler, on_state_change=self._on_modal_state)

    def _discover_forms(self) -> None:
        forms = self.page.query_class(FORM_CLASS)
        if forms and self.config.form is None:
            LOGGER.warning("found %d contact form(s) but no [form] config; leaving them unbound", len(forms))
            return
        for form in forms:
            self.bind_form(form)

    def _on_revealed(self, element: PageElement) -> None:
        self._audit("revealed", "reveal", element_id=element.element_id)

    def _on_modal_state(self, state: ModalState, content: ModalContent) -> None:
        self._audit(f"modal_{state}", "modal", title=content.title)

    def _navigate_to_mail(self, mail: MailComposeRequest) -> None:
        self.page.navigate(mail.to_uri())

    def _audit(self, action: str, component: str, **detail: object) -> None:
        if self._audit_logger is None:
            return
        self._audit_logger(audit_entry(action, component, actor="site_controller", **detail))


@dataclass
class SiteReport:
    revealed: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    modal_state: str | None = None
    scroll_locked: bool = False
    outcomes: list[dict[str, Any]] = field(default_factory=list)
    navigations: list[str] = field(default_factory=list)
    body_classes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "revealed": self.revealed,
            "pending": self.pending,
            "modal_state": self.modal_state,
            "scroll_locked": self.scroll_locked,
            "outcomes": self.outcomes,
            "navigations": self.navigations,
            "body_classes": self.body_classes,
        }


def replay_events(
    controller: SiteController,
    clock: ManualClock,
    events: Iterable[InputEvent],
    *,
    settle_ms: float = 1000.0,
) -> SiteReport:
    """Drive `controller` through timestamped events on a manual clock.

    Timers are pumped once per frame interval between events so delays and
    frame transitions land in order.
    """

    controller.init()
    frame_ms = controller.scheduler.frame_interval_ms
    controller.tick()
    for event in sorted(events, key=lambda e: e.timestamp):
        _advance_to(controller, clock, max(clock(), event.timestamp), frame_ms)
        controller.dispatch(event)
        controller.tick()
    _advance_to(controller, clock, clock() + settle_ms, frame_ms)
    return build_report(controller)


def build_report(controller: SiteController) -> SiteReport:
    modal = controller.modal
    return SiteReport(
        revealed=sorted(controller.reveal.revealed_ids),
        pending=sorted(controller.reveal.pending_ids),
        modal_state=None if modal is None else modal.state,
        scroll_locked=False if modal is None else modal.scroll_locked,
        outcomes=[
            {"attempt_id": o.attempt_id, "kind": o.kind, "field": o.field_name, "message": o.message}
            for o in controller.outcomes
        ],
        navigations=list(controller.page.navigations),
        body_classes=sorted(controller.page.body.classes),
    )


def _advance_to(controller: SiteController, clock: ManualClock, target_ms: float, frame_ms: float) -> None:
    while clock() + frame_ms <= target_ms:
        clock.advance(frame_ms)
        controller.tick()
    clock.set(target_ms)
    controller.tick()
