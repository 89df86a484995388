from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text or None


@dataclass(slots=True)
class Step:
    name: str
    status: str
    conclusion: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Step":
        return Step(
            name=str(data.get("name", "")),
            status=str(data.get("status", "")),
            conclusion=_optional_str(data.get("conclusion")),
            started_at=parse_iso(data.get("started_at")),
            completed_at=parse_iso(data.get("completed_at")),
        )


@dataclass(slots=True)
class Job:
    id: int
    name: str
    status: str
    conclusion: Optional[str] = None
    started_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    html_url: str = ""
    steps: list[Step] = field(default_factory=list)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Job":
        steps_raw = data.get("steps") or []
        steps = [Step.from_dict(item) for item in steps_raw if isinstance(item, dict)]
        return Job(
            id=int(data.get("id", 0) or 0),
            name=str(data.get("name", "")),
            status=str(data.get("status", "")),
            conclusion=_optional_str(data.get("conclusion")),
            started_at=parse_iso(data.get("started_at")),
            created_at=parse_iso(data.get("created_at")),
            html_url=str(data.get("html_url") or ""),
            steps=steps,
        )

    @property
    def queued_since(self) -> Optional[datetime]:
        return self.started_at or self.created_at

    def summary(self) -> dict[str, Any]:
        """Compact view used when tracing payloads in logs."""

        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "conclusion": self.conclusion,
            "steps": [
                {"name": step.name, "status": step.status, "conclusion": step.conclusion}
                for step in self.steps
            ],
        }
