from __future__ import annotations

from typing import Any, Sequence

from .snapshot import Snapshot

LOGS_BUTTON_TEXT = ":mag: Logs"


def _context_block(lines: Sequence[str]) -> dict[str, Any]:
    return {
        "type": "context",
        "elements": [{"type": "mrkdwn", "text": "\n".join(lines)}],
    }


def build_blocks(snapshot: Snapshot) -> list[dict[str, Any]]:
    section: dict[str, Any] = {
        "type": "section",
        "text": {"type": "mrkdwn", "text": snapshot.description},
        "accessory": {
            "type": "button",
            "text": {"type": "plain_text", "text": LOGS_BUTTON_TEXT, "emoji": True},
            "value": "click_logs",
            "action_id": "button-action",
        },
    }
    if snapshot.log_url:
        section["accessory"]["url"] = snapshot.log_url
    blocks = [section]
    if snapshot.active_lines:
        blocks.append(_context_block(snapshot.active_lines))
    if snapshot.completed_lines:
        blocks.append(_context_block(snapshot.completed_lines))
    return blocks


def build_fallback(snapshot: Snapshot) -> str:
    lines = [snapshot.description, *snapshot.active_lines, *snapshot.completed_lines]
    return "\n".join(lines) + "\n"
