"""Interaction components for Vitrine sites."""

from .contact import (
    DeliveryOutcome,
    FormSubmissionPipeline,
    MailComposeRequest,
    PageFormAdapter,
    ValidationError,
)
from .feedback import Toast
from .modal import ModalContent, ModalController, ModalState
from .reveal import RevealScheduler, ViewportWatcher
from .site_runtime import SiteController, SiteReport, build_report, replay_events

__all__ = [
    "DeliveryOutcome",
    "FormSubmissionPipeline",
    "MailComposeRequest",
    "ModalContent",
    "ModalController",
    "ModalState",
    "PageFormAdapter",
    "RevealScheduler",
    "SiteController",
    "SiteReport",
    "Toast",
    "ValidationError",
    "ViewportWatcher",
    "build_report",
    "replay_events",
]
