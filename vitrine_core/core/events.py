from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional


EventType = Literal[
    "click",
    "key_down",
    "scroll",
    "resize",
    "submit",
]

EVENT_TYPES = ("click", "key_down", "scroll", "resize", "submit")


@dataclass(frozen=True)
class InputEvent:
    event_type: EventType
    timestamp: float
    target_id: Optional[str] = None
    key: Optional[str] = None
    scroll_y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


def parse_input_event(payload: Mapping[str, Any]) -> InputEvent:
    """Parse one replay-script row (`{"type": "click", "target": "card-1", ...}`)."""

    event_type = payload.get("type")
    if event_type not in EVENT_TYPES:
        raise ValueError(f"unsupported event type: {event_type!r}")
    target = payload.get("target")
    return InputEvent(
        event_type=event_type,
        timestamp=float(payload.get("at_ms", 0.0)),
        target_id=None if target is None else str(target),
        key=None if payload.get("key") is None else str(payload["key"]),
        scroll_y=_optional_float(payload.get("scroll_y")),
        width=_optional_float(payload.get("width")),
        height=_optional_float(payload.get("height")),
    )


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"expected a number, got {value!r}") from exc
