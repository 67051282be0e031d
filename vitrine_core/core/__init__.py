from .audit import AuditLogger, JsonlAuditSink, SQLiteAuditSink, audit_entry
from .config import (
    FormConfig,
    RevealConfig,
    SiteConfig,
    ToastConfig,
    load_site_config,
    site_config_from_mapping,
)
from .events import InputEvent, parse_input_event
from .task_scheduler import FrameThrottle, ManualClock, ScheduledTask, TaskScheduler, monotonic_ms

__all__ = [
    "AuditLogger",
    "FormConfig",
    "FrameThrottle",
    "InputEvent",
    "JsonlAuditSink",
    "ManualClock",
    "RevealConfig",
    "SQLiteAuditSink",
    "ScheduledTask",
    "SiteConfig",
    "TaskScheduler",
    "ToastConfig",
    "audit_entry",
    "load_site_config",
    "monotonic_ms",
    "parse_input_event",
    "site_config_from_mapping",
]
