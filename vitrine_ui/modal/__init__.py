"""Gallery dialog lifecycle."""

from .controller import ModalContent, ModalController, ModalState, ScrollLock, content_from_card

__all__ = [
    "ModalContent",
    "ModalController",
    "ModalState",
    "ScrollLock",
    "content_from_card",
]
