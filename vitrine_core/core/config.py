from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import tomllib
from typing import Any, Mapping


DEFAULT_REVEAL_THRESHOLD = 0.12
DEFAULT_REVEAL_ROOT_MARGIN = 0.12
DEFAULT_STAGGER_UNIT_MS = 80.0
DEFAULT_SWEEP_DELAY_MS = 150.0
DEFAULT_FORM_TIMEOUT_S = 8.0
DEFAULT_TOAST_MS = 2500.0
DEFAULT_PAGE_LOADED_DELAY_MS = 80.0


@dataclass(frozen=True)
class RevealConfig:
    threshold: float = DEFAULT_REVEAL_THRESHOLD
    root_margin: float = DEFAULT_REVEAL_ROOT_MARGIN
    stagger_unit_ms: float = DEFAULT_STAGGER_UNIT_MS
    sweep_delay_ms: float = DEFAULT_SWEEP_DELAY_MS

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError("reveal.threshold must be within [0, 1]")
        if self.root_margin < 0.0:
            raise ValueError("reveal.root_margin must be >= 0")
        if self.stagger_unit_ms < 0.0:
            raise ValueError("reveal.stagger_unit_ms must be >= 0")
        if self.sweep_delay_ms < 0.0:
            raise ValueError("reveal.sweep_delay_ms must be >= 0")


@dataclass(frozen=True)
class FormConfig:
    """Delivery settings for one contact form.

    Without `endpoint_url` every valid submission goes straight to the
    mail-compose fallback.
    """

    fallback_address: str
    endpoint_url: str | None = None
    timeout_s: float = DEFAULT_FORM_TIMEOUT_S

    def __post_init__(self) -> None:
        if not self.fallback_address.strip():
            raise ValueError("form.fallback_address must be non-empty")
        if self.timeout_s <= 0:
            raise ValueError("form.timeout_s must be > 0")


@dataclass(frozen=True)
class ToastConfig:
    duration_ms: float = DEFAULT_TOAST_MS

    def __post_init__(self) -> None:
        if self.duration_ms <= 0:
            raise ValueError("toast.duration_ms must be > 0")


@dataclass(frozen=True)
class SiteConfig:
    reveal: RevealConfig = field(default_factory=RevealConfig)
    form: FormConfig | None = None
    toast: ToastConfig = field(default_factory=ToastConfig)
    page_loaded_delay_ms: float = DEFAULT_PAGE_LOADED_DELAY_MS


def load_site_config(path: str | Path) -> SiteConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"site config not found: {config_path}")
    with config_path.open("rb") as f:
        raw = tomllib.load(f)
    return site_config_from_mapping(raw)


def site_config_from_mapping(raw: Mapping[str, Any]) -> SiteConfig:
    reveal_raw = _coerce_table(raw.get("reveal", {}), "reveal")
    form_raw = _coerce_table(raw.get("form", {}), "form")
    toast_raw = _coerce_table(raw.get("toast", {}), "toast")
    page_raw = _coerce_table(raw.get("page", {}), "page")

    reveal = RevealConfig(
        threshold=_coerce_float(reveal_raw.get("threshold", DEFAULT_REVEAL_THRESHOLD), "reveal.threshold"),
        root_margin=_coerce_float(reveal_raw.get("root_margin", DEFAULT_REVEAL_ROOT_MARGIN), "reveal.root_margin"),
        stagger_unit_ms=_coerce_float(
            reveal_raw.get("stagger_unit_ms", DEFAULT_STAGGER_UNIT_MS), "reveal.stagger_unit_ms"
        ),
        sweep_delay_ms=_coerce_float(reveal_raw.get("sweep_delay_ms", DEFAULT_SWEEP_DELAY_MS), "reveal.sweep_delay_ms"),
    )

    form = None
    fallback_address = _coerce_optional_str(form_raw.get("fallback_address"), "form.fallback_address")
    endpoint = _coerce_optional_str(form_raw.get("endpoint"), "form.endpoint")
    if fallback_address is not None:
        form = FormConfig(
            fallback_address=fallback_address,
            endpoint_url=endpoint or None,
            timeout_s=_coerce_float(form_raw.get("timeout_s", DEFAULT_FORM_TIMEOUT_S), "form.timeout_s"),
        )
    elif endpoint is not None:
        raise ValueError("form.fallback_address is required when form.endpoint is set")

    toast = ToastConfig(duration_ms=_coerce_float(toast_raw.get("duration_ms", DEFAULT_TOAST_MS), "toast.duration_ms"))
    loaded_delay = _coerce_float(page_raw.get("loaded_delay_ms", DEFAULT_PAGE_LOADED_DELAY_MS), "page.loaded_delay_ms")
    if loaded_delay < 0:
        raise ValueError("page.loaded_delay_ms must be >= 0")
    return SiteConfig(reveal=reveal, form=form, toast=toast, page_loaded_delay_ms=loaded_delay)


def _coerce_table(value: object, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{field_name} must be a table")
    return value


def _coerce_float(value: object, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be a number")
    return float(value)


def _coerce_optional_str(value: object, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string if provided")
    return value.strip()
