from __future__ import annotations

from deploy_status.render import LOGS_BUTTON_TEXT, build_blocks, build_fallback
from deploy_status.snapshot import Color, Snapshot


def test_blocks_include_context_sections_only_when_populated() -> None:
    snapshot = Snapshot(
        description="⏳ Deploying shop",
        active_lines=(":hammer_and_wrench: Deploy running for 5s...", ":clock1: build queued for 3s..."),
        log_url="https://example.test/logs",
        color=Color.WARNING,
    )
    blocks = build_blocks(snapshot)
    assert [block["type"] for block in blocks] == ["section", "context"]
    section = blocks[0]
    assert section["text"] == {"type": "mrkdwn", "text": "⏳ Deploying shop"}
    assert section["accessory"]["url"] == "https://example.test/logs"
    assert section["accessory"]["text"]["text"] == LOGS_BUTTON_TEXT
    assert blocks[1]["elements"][0]["text"] == (
        ":hammer_and_wrench: Deploy running for 5s...\n:clock1: build queued for 3s..."
    )


def test_blocks_with_both_lists() -> None:
    snapshot = Snapshot(
        description="done",
        active_lines=("a",),
        completed_lines=("b", "c"),
        log_url="https://example.test/logs",
    )
    blocks = build_blocks(snapshot)
    assert [block["type"] for block in blocks] == ["section", "context", "context"]
    assert blocks[2]["elements"][0]["text"] == "b\nc"


def test_button_without_url_when_log_url_missing() -> None:
    blocks = build_blocks(Snapshot(description="x"))
    assert len(blocks) == 1
    assert "url" not in blocks[0]["accessory"]


def test_fallback_lists_every_line() -> None:
    snapshot = Snapshot(description="head", active_lines=("a",), completed_lines=("b",))
    assert build_fallback(snapshot) == "head\na\nb\n"
    assert build_fallback(Snapshot(description="head")) == "head\n"
