from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

import httpx

from ..errors import SlackApiError
from ..render import build_blocks, build_fallback
from ..snapshot import Snapshot

SLACK_API_URL = "https://slack.com/api"


@dataclass(slots=True)
class NotificationState:
    channel: str
    message_ts: Optional[str] = None

    @property
    def has_message(self) -> bool:
        return bool(self.message_ts)


@dataclass(slots=True)
class PostedMessage:
    ts: str
    channel: str


class NotificationTransport(Protocol):
    def post_message(
        self,
        *,
        channel: str,
        color: Optional[str],
        fallback: str,
        blocks: list[dict[str, Any]],
    ) -> PostedMessage:
        ...

    def update_message(
        self,
        *,
        ts: str,
        channel: str,
        color: Optional[str],
        fallback: str,
        blocks: list[dict[str, Any]],
    ) -> None:
        ...

    def delete_message(self, *, ts: str, channel: str) -> None:
        ...

    def close(self) -> None:
        ...


def _attachments(color: Optional[str], fallback: str, blocks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    attachment: dict[str, Any] = {"fallback": fallback, "blocks": blocks}
    if color:
        attachment["color"] = color
    return [attachment]


class SlackTransport(NotificationTransport):
    def __init__(
        self,
        *,
        bot_token: str,
        timeout: float = 10.0,
        max_retries: int = 5,
        base_url: str = SLACK_API_URL,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout)
        self._bot_token = bot_token
        self._max_retries = max(1, max_retries)
        self._base_url = base_url.rstrip("/")
        self._sleep = sleep

    def close(self) -> None:
        self._client.close()

    def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/{method}"
        headers = {
            "Authorization": f"Bearer {self._bot_token}",
            "Content-Type": "application/json; charset=utf-8",
        }
        delay = 1.0
        last_error = "retry_exceeded"
        for attempt in range(self._max_retries):
            final = attempt == self._max_retries - 1
            try:
                response = self._client.post(url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                last_error = f"{exc.__class__.__name__}: {exc}"
                if not final:
                    self._sleep(delay)
                    delay = min(delay * 2, 30)
                continue
            if response.status_code == 429:
                last_error = "ratelimited"
                retry_after = response.headers.get("Retry-After")
                try:
                    wait_time = float(retry_after) if retry_after else 1.0
                except ValueError:
                    wait_time = 1.0
                if not final:
                    self._sleep(wait_time)
                continue
            if 500 <= response.status_code < 600:
                last_error = f"http_{response.status_code}"
                if not final:
                    self._sleep(delay)
                    delay = min(delay * 2, 30)
                continue
            if response.status_code != 200:
                raise SlackApiError(method, f"http_{response.status_code}")
            try:
                body = response.json()
            except ValueError as exc:
                raise SlackApiError(method, f"invalid_json: {exc}") from exc
            if not isinstance(body, dict) or not body.get("ok"):
                error = body.get("error", "unknown_error") if isinstance(body, dict) else "unknown_error"
                raise SlackApiError(method, str(error))
            return body
        raise SlackApiError(method, last_error)

    def post_message(
        self,
        *,
        channel: str,
        color: Optional[str],
        fallback: str,
        blocks: list[dict[str, Any]],
    ) -> PostedMessage:
        body = self._call(
            "chat.postMessage",
            {"channel": channel, "attachments": _attachments(color, fallback, blocks)},
        )
        return PostedMessage(ts=str(body.get("ts", "")), channel=str(body.get("channel") or channel))

    def update_message(
        self,
        *,
        ts: str,
        channel: str,
        color: Optional[str],
        fallback: str,
        blocks: list[dict[str, Any]],
    ) -> None:
        self._call(
            "chat.update",
            {"ts": ts, "channel": channel, "attachments": _attachments(color, fallback, blocks)},
        )

    def delete_message(self, *, ts: str, channel: str) -> None:
        self._call("chat.delete", {"ts": ts, "channel": channel})


class StatusNotifier:
    """Keeps exactly one Slack message in sync with the latest snapshot."""

    def __init__(self, *, transport: NotificationTransport, state: NotificationState, logger) -> None:
        self.transport = transport
        self.state = state
        self.logger = logger

    def publish(self, snapshot: Snapshot, *, republish: bool = False) -> None:
        if republish and self.state.has_message:
            self.logger.info("notification_republish", ts=self.state.message_ts, channel=self.state.channel)
            self.transport.delete_message(ts=self.state.message_ts, channel=self.state.channel)
            self.state.message_ts = None

        color = snapshot.color.hex
        fallback = build_fallback(snapshot)
        blocks = build_blocks(snapshot)
        if self.state.has_message:
            self.transport.update_message(
                ts=self.state.message_ts,
                channel=self.state.channel,
                color=color,
                fallback=fallback,
                blocks=blocks,
            )
            self.logger.debug("notification_updated", ts=self.state.message_ts, channel=self.state.channel)
            return

        posted = self.transport.post_message(
            channel=self.state.channel,
            color=color,
            fallback=fallback,
            blocks=blocks,
        )
        self.state.message_ts = posted.ts
        self.state.channel = posted.channel
        self.logger.info("notification_posted", ts=posted.ts, channel=posted.channel)

    def close(self) -> None:
        if hasattr(self.transport, "close"):
            self.transport.close()
