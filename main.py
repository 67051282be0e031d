from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from vitrine_core.core import (
    FormConfig,
    JsonlAuditSink,
    ManualClock,
    SQLiteAuditSink,
    SiteConfig,
    TaskScheduler,
    load_site_config,
    parse_input_event,
)
from vitrine_core.ui.page_loader import load_page
from vitrine_ui.contact import FormSubmissionPipeline, MailComposeRequest, MappingForm
from vitrine_ui.site_runtime import SiteController, replay_events


def main() -> None:
    parser = argparse.ArgumentParser(prog="vitrine")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser("replay", help="Replay a page folder (page.json + events.jsonl [+ site.toml]).")
    replay.add_argument("page_dir", type=Path)
    replay.add_argument("--events", type=Path, default=None, help="Event script. Default: <page_dir>/events.jsonl.")
    replay.add_argument("--config", type=Path, default=None, help="Site config. Default: <page_dir>/site.toml if present.")
    replay.add_argument("--settle-ms", type=float, default=1000.0)
    replay.add_argument("--audit-sqlite", type=Path, default=None)
    replay.add_argument("--audit-jsonl", type=Path, default=None)

    submit = sub.add_parser("submit", help="Send one contact enquiry through the delivery pipeline.")
    submit.add_argument("--config", type=Path, default=None)
    submit.add_argument("--endpoint", default=None, help="Overrides form.endpoint.")
    submit.add_argument("--fallback-address", default=None, help="Overrides form.fallback_address.")
    submit.add_argument("--timeout-s", type=float, default=None)
    for name in ("name", "email", "phone", "service", "message"):
        submit.add_argument(f"--{name}", default="")
    submit.add_argument("--audit-sqlite", type=Path, default=None)
    submit.add_argument("--audit-jsonl", type=Path, default=None)

    report = sub.add_parser("audit-report", help="Print audit summary from SQLite or JSONL sink.")
    report.add_argument("--audit-sqlite", type=Path, default=None)
    report.add_argument("--audit-jsonl", type=Path, default=None)

    prune = sub.add_parser("audit-prune", help="Prune old audit rows to max row count.")
    prune.add_argument("--audit-sqlite", type=Path, default=None)
    prune.add_argument("--audit-jsonl", type=Path, default=None)
    prune.add_argument("--max-rows", type=int, required=True)
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "replay":
        config = _resolve_site_config(args.config, args.page_dir / "site.toml")
        events_path = args.events or (args.page_dir / "events.jsonl")
        events = [parse_input_event(row) for row in _read_jsonl(events_path)]
        page = load_page(args.page_dir)
        audit_sink = _build_audit_sink(args.audit_sqlite, args.audit_jsonl)
        try:
            clock = ManualClock()
            controller = SiteController(
                page,
                config=config,
                scheduler=TaskScheduler(clock=clock),
                audit_logger=audit_sink.log if audit_sink is not None else None,
            )
            result = replay_events(controller, clock, events, settle_ms=args.settle_ms)
            print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
        finally:
            _close_sink(audit_sink)
        return

    if args.command == "submit":
        form_config = _resolve_form_config(args)
        audit_sink = _build_audit_sink(args.audit_sqlite, args.audit_jsonl)
        handed_off: list[MailComposeRequest] = []
        try:
            pipeline = FormSubmissionPipeline(
                form_config,
                mail_handoff=handed_off.append,
                audit_logger=audit_sink.log if audit_sink is not None else None,
            )
            form = MappingForm(fields={name: getattr(args, name) for name in ("name", "email", "phone", "service", "message")})
            outcome = pipeline.submit(form)
            for _, text in form.statuses:
                print(text)
            if outcome.kind == "deferred" and handed_off:
                print(handed_off[-1].to_uri())
            if outcome.kind == "rejected":
                raise SystemExit(2)
        finally:
            _close_sink(audit_sink)
        return

    if args.command in ("audit-report", "audit-prune"):
        audit_sink = _build_audit_sink(args.audit_sqlite, args.audit_jsonl)
        if audit_sink is None:
            raise RuntimeError("one of --audit-sqlite/--audit-jsonl is required")
        try:
            if args.command == "audit-report":
                print(json.dumps(audit_sink.summarize(), indent=2, sort_keys=True))
            else:
                print(f"pruned rows={audit_sink.prune(max_rows=args.max_rows)}")
        finally:
            _close_sink(audit_sink)
        return

    raise RuntimeError(f"unsupported command: {args.command}")


def _build_audit_sink(audit_sqlite: Path | None, audit_jsonl: Path | None):
    if audit_sqlite is not None:
        return SQLiteAuditSink(audit_sqlite)
    if audit_jsonl is not None:
        return JsonlAuditSink(audit_jsonl)
    return None


def _close_sink(audit_sink) -> None:
    close = getattr(audit_sink, "close", None)
    if close is not None:
        close()


def _resolve_site_config(explicit: Path | None, default_path: Path) -> SiteConfig:
    if explicit is not None:
        return load_site_config(explicit)
    if default_path.exists():
        return load_site_config(default_path)
    return SiteConfig()


def _resolve_form_config(args: argparse.Namespace) -> FormConfig:
    base = load_site_config(args.config).form if args.config is not None else None
    fallback = args.fallback_address or (base.fallback_address if base is not None else None)
    if not fallback:
        raise RuntimeError("a fallback address is required (--fallback-address or form.fallback_address)")
    endpoint = args.endpoint if args.endpoint is not None else (base.endpoint_url if base is not None else None)
    timeout_s = args.timeout_s if args.timeout_s is not None else (base.timeout_s if base is not None else 8.0)
    return FormConfig(fallback_address=fallback, endpoint_url=endpoint or None, timeout_s=timeout_s)


def _read_jsonl(path: Path) -> list[dict[str, object]]:
    if not path.exists():
        return []
    rows: list[dict[str, object]] = []
    for line_no, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        row = json.loads(line)
        if not isinstance(row, dict):
            raise ValueError(f"{path}:{line_no}: event must be a JSON object")
        rows.append(row)
    return rows


if __name__ == "__main__":
    main()
