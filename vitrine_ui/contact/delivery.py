from __future__ import annotations

from dataclasses import dataclass
import http.client
import json
import logging
from typing import Callable, Mapping, Protocol
import urllib.error
import urllib.parse
import urllib.request

from .validation import FormSubmission

LOGGER = logging.getLogger(__name__)

USER_AGENT = "vitrine-contact/1.0"
FALLBACK_SENDER = "website visitor"


class DeliveryTransportError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class TransportResult:
    ok: bool
    status: int | None = None
    error: str | None = None


class FormTransport(Protocol):
    def deliver(self, endpoint_url: str, payload: Mapping[str, str], timeout_s: float) -> TransportResult:
        ...


def post_json(endpoint_url: str, payload: Mapping[str, str], timeout_s: float) -> int:
    data = json.dumps(dict(payload)).encode("utf-8")
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }
    try:
        req = urllib.request.Request(url=endpoint_url, data=data, headers=headers, method="POST")
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            status = int(resp.status)
    except urllib.error.HTTPError as exc:
        raise DeliveryTransportError(f"endpoint returned HTTP {exc.code}", status=exc.code) from exc
    except urllib.error.URLError as exc:
        raise DeliveryTransportError(f"endpoint unreachable: {exc.reason}") from exc
    except (TimeoutError, OSError) as exc:
        raise DeliveryTransportError(f"transport failure: {exc}") from exc
    except http.client.HTTPException as exc:
        raise DeliveryTransportError(f"malformed response: {exc!r}") from exc
    except ValueError as exc:
        raise DeliveryTransportError(f"invalid endpoint url: {endpoint_url}") from exc
    if not 200 <= status < 300:
        raise DeliveryTransportError(f"endpoint returned HTTP {status}", status=status)
    return status


class HttpFormTransport:
    """JSON POST transport; failures come back as a failed `TransportResult`."""

    def __init__(self, post: Callable[[str, Mapping[str, str], float], int] = post_json) -> None:
        self._post = post

    def deliver(self, endpoint_url: str, payload: Mapping[str, str], timeout_s: float) -> TransportResult:
        try:
            status = self._post(endpoint_url, payload, timeout_s)
        except DeliveryTransportError as exc:
            return TransportResult(ok=False, status=exc.status, error=str(exc))
        return TransportResult(ok=True, status=status)


@dataclass(frozen=True)
class MailComposeRequest:
    recipient: str
    subject: str
    body: str

    def to_uri(self) -> str:
        query = urllib.parse.urlencode({"subject": self.subject, "body": self.body}, quote_via=urllib.parse.quote)
        return f"mailto:{self.recipient}?{query}"


MailHandoff = Callable[[MailComposeRequest], None]


def compose_fallback_mail(submission: FormSubmission, recipient: str) -> MailComposeRequest:
    sender = submission.name or submission.email or FALLBACK_SENDER
    lines = [
        f"Name: {submission.name}",
        f"Email: {submission.email}",
        f"Phone: {submission.phone}",
        f"Service: {submission.service}",
        "",
        "Message:",
        submission.message,
    ]
    return MailComposeRequest(
        recipient=recipient,
        subject=f"Project enquiry from {sender}",
        body="\n".join(lines),
    )
