"""Contact form validation and network-then-mail delivery."""

from .delivery import (
    DeliveryTransportError,
    FormTransport,
    HttpFormTransport,
    MailComposeRequest,
    MailHandoff,
    TransportResult,
    compose_fallback_mail,
    post_json,
)
from .page_form import PageFormAdapter
from .pipeline import ContactForm, DeliveryOutcome, FormSubmissionPipeline, MappingForm, OutcomeKind
from .validation import FormSubmission, ValidationError, validate_submission

__all__ = [
    "ContactForm",
    "DeliveryOutcome",
    "DeliveryTransportError",
    "FormSubmission",
    "FormSubmissionPipeline",
    "FormTransport",
    "HttpFormTransport",
    "MailComposeRequest",
    "MailHandoff",
    "MappingForm",
    "OutcomeKind",
    "PageFormAdapter",
    "TransportResult",
    "ValidationError",
    "compose_fallback_mail",
    "post_json",
    "validate_submission",
]
