from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping


FIELD_ORDER = ("name", "email", "phone", "service", "message")
REQUIRED_FIELDS = ("name", "email", "message")
MULTILINE_FIELDS = ("message",)

REQUIRED_MESSAGES = {
    "name": "Please enter your name.",
    "email": "Please enter your email address.",
    "message": "Please enter a message.",
}


class ValidationError(ValueError):
    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(message)
        self.field_name = field_name
        self.message = message


@dataclass(frozen=True)
class FormSubmission:
    """Field values captured at submit time. Unknown fields are carried through."""

    fields: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> "FormSubmission":
        fields: dict[str, str] = {}
        for key, value in raw.items():
            text = "" if value is None else str(value)
            # Multi-line free text is kept verbatim.
            fields[str(key)] = text if key in MULTILINE_FIELDS else text.strip()
        return cls(fields)

    def get(self, name: str) -> str:
        return self.fields.get(name, "")

    @property
    def name(self) -> str:
        return self.get("name")

    @property
    def email(self) -> str:
        return self.get("email")

    @property
    def phone(self) -> str:
        return self.get("phone")

    @property
    def service(self) -> str:
        return self.get("service")

    @property
    def message(self) -> str:
        return self.get("message")

    def as_payload(self) -> dict[str, str]:
        payload = {name: self.get(name) for name in FIELD_ORDER}
        for key, value in self.fields.items():
            payload.setdefault(key, value)
        return payload


def validate_submission(submission: FormSubmission, present_fields: Iterable[str] | None = None) -> None:
    """Raise `ValidationError` for the first empty required field, in name/email/message order.

    Only fields the form actually renders are checked; `None` checks all three.
    """

    present = set(REQUIRED_FIELDS if present_fields is None else present_fields)
    for name in REQUIRED_FIELDS:
        if name not in present:
            continue
        if not submission.get(name).strip():
            raise ValidationError(name, REQUIRED_MESSAGES[name])
