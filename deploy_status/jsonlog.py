"""JSON-lines logging for the reporter.

Every record is one JSON object on its own line. ``Job`` and ``Snapshot``
values are written as compact summaries so a tick log stays readable in the
Actions console; run context attached with :meth:`JsonLogger.bind` is repeated
on every record.
"""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, TextIO

from .models import Job
from .snapshot import Color, Snapshot

LEVELS: dict[str, int] = {"debug": 10, "info": 20, "warn": 30, "error": 40}


def _level(name: str | None, default: int = 20) -> int:
    return LEVELS.get((name or "").lower(), default)


def snapshot_fields(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "description": snapshot.description,
        "color": snapshot.color.hex,
        "active": list(snapshot.active_lines),
        "completed": list(snapshot.completed_lines),
        "all_jobs_completed": snapshot.all_jobs_completed,
        "max_queued_seconds": round(snapshot.max_queued_seconds, 1),
    }


def to_log_value(value: Any) -> Any:
    if isinstance(value, Snapshot):
        return snapshot_fields(value)
    if isinstance(value, Job):
        return value.summary()
    if isinstance(value, Color):
        return value.hex
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, BaseException):
        return repr(value)
    if is_dataclass(value) and not isinstance(value, type):
        return to_log_value(asdict(value))
    if isinstance(value, dict):
        return {str(key): to_log_value(item) for key, item in value.items()}
    if isinstance(value, (frozenset, set)):
        return sorted(to_log_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [to_log_value(item) for item in value]
    return value


class JsonLogger:
    def __init__(
        self,
        *,
        stdout_level: str = "info",
        file_path: Path | None = None,
        file_level: str | None = None,
        stream: TextIO | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.stdout_level = _level(stdout_level)
        self.file_level = _level(file_level or stdout_level)
        self.stream = stream
        self.context: dict[str, Any] = dict(context or {})
        self.file_handle = None
        if file_path:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            self.file_handle = file_path.open("a", encoding="utf-8")

    def set_level(self, stdout_level: str) -> None:
        self.stdout_level = _level(stdout_level)

    def bind(self, **fields: Any) -> None:
        """Attach run context (repository, run id, attempt) to later records."""

        self.context.update(fields)

    def close(self) -> None:
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def _render(self, level: str, message: str, fields: dict[str, Any]) -> str:
        record: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "message": message,
        }
        record.update(self.context)
        record.update(fields)
        return json.dumps(to_log_value(record), ensure_ascii=False, default=str)

    def log(self, level: str, message: str, **fields: Any) -> None:
        numeric = _level(level)
        to_stdout = numeric >= self.stdout_level
        to_file = self.file_handle is not None and numeric >= self.file_level
        if not (to_stdout or to_file):
            return
        line = self._render(level, message, fields) + "\n"
        targets = []
        if to_stdout:
            targets.append(self.stream or sys.stdout)
        if to_file:
            targets.append(self.file_handle)
        for target in targets:
            target.write(line)
            target.flush()

    def debug(self, message: str, **fields: Any) -> None:
        self.log("debug", message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log("info", message, **fields)

    def warn(self, message: str, **fields: Any) -> None:
        self.log("warn", message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log("error", message, **fields)
