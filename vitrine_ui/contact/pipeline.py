from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Literal, Mapping, Protocol

from vitrine_core.core.audit import AuditLogger, audit_entry
from vitrine_core.core.config import FormConfig

from .delivery import (
    FormTransport,
    HttpFormTransport,
    MailComposeRequest,
    MailHandoff,
    TransportResult,
    compose_fallback_mail,
)
from .validation import FIELD_ORDER, FormSubmission, ValidationError, validate_submission

LOGGER = logging.getLogger(__name__)

OutcomeKind = Literal["sent", "deferred", "rejected"]
StatusKind = Literal["pending", "success", "info", "error"]

STATUS_SENDING = "Sending…"
STATUS_SENT = "Thanks! Your message has been sent."
STATUS_FALLBACK = "Opening your email app to finish sending…"
STATUS_HANDOFF_FAILED = "Couldn't open your email app. Please write to {address} directly."


@dataclass(frozen=True)
class DeliveryOutcome:
    kind: OutcomeKind
    attempt_id: int
    field_name: str | None = None
    message: str = ""
    mail: MailComposeRequest | None = None
    primary: TransportResult | None = None
    handed_off: bool = True

    @property
    def terminal(self) -> bool:
        return self.kind in ("sent", "deferred")


class ContactForm(Protocol):
    def values(self) -> Mapping[str, str]:
        ...

    def present_fields(self) -> set[str]:
        ...

    def set_status(self, text: str, kind: StatusKind) -> None:
        ...

    def reset(self) -> None:
        ...


@dataclass
class MappingForm:
    """Dict-backed form used by the CLI and by callers without a page."""

    fields: dict[str, str] = field(default_factory=dict)
    controls: set[str] | None = None
    statuses: list[tuple[str, str]] = field(default_factory=list)

    def values(self) -> Mapping[str, str]:
        return dict(self.fields)

    def present_fields(self) -> set[str]:
        if self.controls is not None:
            return set(self.controls)
        return set(FIELD_ORDER)

    def set_status(self, text: str, kind: StatusKind) -> None:
        self.statuses.append((kind, text))

    def reset(self) -> None:
        self.fields = {name: "" for name in self.fields}


class FormSubmissionPipeline:
    """Validate, try the endpoint, fall back to a composed email.

    Each `submit` call is a fresh attempt with its own id. Primary-channel
    failures are not errors here: they select the fallback branch.
    """

    def __init__(
        self,
        config: FormConfig,
        *,
        mail_handoff: MailHandoff,
        transport: FormTransport | None = None,
        audit_logger: AuditLogger | None = None,
        on_outcome: Callable[[DeliveryOutcome], None] | None = None,
    ) -> None:
        self._config = config
        self._mail_handoff = mail_handoff
        self._transport = transport or HttpFormTransport()
        self._audit_logger = audit_logger
        self._on_outcome = on_outcome or (lambda outcome: None)
        self._next_attempt_id = 1

    @property
    def config(self) -> FormConfig:
        return self._config

    def submit(self, form: ContactForm, config: FormConfig | None = None) -> DeliveryOutcome:
        config = config or self._config
        attempt_id = self._next_attempt_id
        self._next_attempt_id += 1
        submission = FormSubmission.from_mapping(form.values())

        try:
            validate_submission(submission, form.present_fields())
        except ValidationError as exc:
            form.set_status(exc.message, "error")
            return self._finish(DeliveryOutcome("rejected", attempt_id, field_name=exc.field_name, message=exc.message))

        form.set_status(STATUS_SENDING, "pending")
        primary = self._try_primary(submission, config, attempt_id)
        if primary is not None and primary.ok:
            form.set_status(STATUS_SENT, "success")
            form.reset()
            return self._finish(DeliveryOutcome("sent", attempt_id, message=STATUS_SENT, primary=primary))

        mail = compose_fallback_mail(submission, config.fallback_address)
        form.set_status(STATUS_FALLBACK, "info")
        try:
            self._mail_handoff(mail)
        except Exception:  # noqa: BLE001
            LOGGER.exception("contact attempt %d: mail handoff failed", attempt_id)
            message = STATUS_HANDOFF_FAILED.format(address=config.fallback_address)
            form.set_status(message, "error")
            return self._finish(
                DeliveryOutcome(
                    "deferred", attempt_id, message=message, mail=mail, primary=primary, handed_off=False
                )
            )
        form.reset()
        return self._finish(
            DeliveryOutcome("deferred", attempt_id, message=STATUS_FALLBACK, mail=mail, primary=primary)
        )

    def _try_primary(self, submission: FormSubmission, config: FormConfig, attempt_id: int) -> TransportResult | None:
        if not config.endpoint_url:
            return None
        result = self._transport.deliver(config.endpoint_url, submission.as_payload(), config.timeout_s)
        if not result.ok:
            LOGGER.warning(
                "contact attempt %d: primary delivery failed (%s); using mail fallback",
                attempt_id,
                result.error or f"HTTP {result.status}",
            )
        return result

    def _finish(self, outcome: DeliveryOutcome) -> DeliveryOutcome:
        LOGGER.info("contact attempt %d finished: %s", outcome.attempt_id, outcome.kind)
        if self._audit_logger is not None:
            detail: dict[str, object] = {"attempt_id": outcome.attempt_id}
            if outcome.field_name is not None:
                detail["field"] = outcome.field_name
            if outcome.primary is not None:
                detail["primary_status"] = outcome.primary.status
            if not outcome.handed_off:
                detail["handoff_failed"] = True
            self._audit_logger(audit_entry(f"form_{outcome.kind}", "contact_form", actor="pipeline", **detail))
        self._on_outcome(outcome)
        return outcome
