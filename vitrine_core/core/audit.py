from __future__ import annotations

import atexit
import json
from pathlib import Path
import sqlite3
import threading
import time
from typing import Any, Callable

AuditLogger = Callable[[dict[str, object]], None]


def audit_entry(action: str, component: str, *, actor: str = "site", **detail: object) -> dict[str, object]:
    entry: dict[str, object] = {
        "ts_ns": time.time_ns(),
        "action": action,
        "component": component,
        "actor": actor,
    }
    entry.update(detail)
    return entry


def _empty_summary() -> dict[str, Any]:
    return {"total": 0, "by_action": {}, "by_component": {}}


class JsonlAuditSink:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log(self, entry: dict[str, Any]) -> None:
        line = json.dumps(entry, separators=(",", ":"), sort_keys=True, default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")

    def entries(self, *, component: str | None = None) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        out: list[dict[str, Any]] = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    row = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(row, dict) and (component is None or row.get("component") == component):
                    out.append(row)
        return out

    def summarize(self) -> dict[str, Any]:
        summary = _empty_summary()
        for row in self.entries():
            summary["total"] += 1
            action = str(row.get("action", ""))
            component = str(row.get("component", ""))
            summary["by_action"][action] = summary["by_action"].get(action, 0) + 1
            summary["by_component"][component] = summary["by_component"].get(component, 0) + 1
        return summary

    def prune(self, *, max_rows: int | None = None) -> int:
        if max_rows is None or max_rows <= 0 or not self.path.exists():
            return 0
        with self._lock:
            rows = [line for line in self.path.read_text(encoding="utf-8").splitlines() if line.strip()]
            if len(rows) <= max_rows:
                return 0
            kept = rows[-max_rows:]
            with self.path.open("w", encoding="utf-8") as f:
                for row in kept:
                    f.write(row)
                    f.write("\n")
        return len(rows) - len(kept)


class SQLiteAuditSink:
    """Interaction audit rows in one SQLite table; `payload_json` keeps the full entry."""

    _COLUMNS = ("ts_ns", "action", "component", "actor")

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = sqlite3.connect(self.path, check_same_thread=False)
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS interaction_events ("
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "ts_ns INTEGER, action TEXT, component TEXT, actor TEXT, payload_json TEXT)"
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS interaction_events_component ON interaction_events (component)"
            )
        atexit.register(self.close)

    def log(self, entry: dict[str, Any]) -> None:
        row = (
            int(entry.get("ts_ns", 0)),
            *(str(entry.get(column, "")) for column in self._COLUMNS[1:]),
            json.dumps(entry, separators=(",", ":"), sort_keys=True, default=str),
        )
        with self._lock:
            if self._conn is None:
                return
            with self._conn:
                self._conn.execute(
                    "INSERT INTO interaction_events (ts_ns, action, component, actor, payload_json) "
                    "VALUES (?, ?, ?, ?, ?)",
                    row,
                )

    def entries(self, *, component: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            if self._conn is None:
                return []
            if component is None:
                cursor = self._conn.execute("SELECT payload_json FROM interaction_events ORDER BY id")
            else:
                cursor = self._conn.execute(
                    "SELECT payload_json FROM interaction_events WHERE component = ? ORDER BY id", (component,)
                )
            return [json.loads(payload) for (payload,) in cursor]

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None

    def summarize(self) -> dict[str, Any]:
        with self._lock:
            if self._conn is None:
                return _empty_summary()
            return {
                "total": self._row_count(),
                "by_action": self._count_by("action"),
                "by_component": self._count_by("component"),
            }

    def prune(self, *, max_rows: int | None = None) -> int:
        if max_rows is None or max_rows <= 0:
            return 0
        with self._lock:
            if self._conn is None:
                return 0
            overflow = self._row_count() - max_rows
            if overflow <= 0:
                return 0
            with self._conn:
                self._conn.execute(
                    "DELETE FROM interaction_events WHERE id IN "
                    "(SELECT id FROM interaction_events ORDER BY id ASC LIMIT ?)",
                    (overflow,),
                )
            return overflow

    def _row_count(self) -> int:
        assert self._conn is not None
        return int(self._conn.execute("SELECT COUNT(*) FROM interaction_events").fetchone()[0])

    def _count_by(self, column: str) -> dict[str, int]:
        assert self._conn is not None and column in self._COLUMNS
        query = f"SELECT {column}, COUNT(*) FROM interaction_events GROUP BY {column}"
        return {str(key): int(count) for key, count in self._conn.execute(query)}
