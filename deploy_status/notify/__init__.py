from __future__ import annotations

from .slack_notifier import (
    NotificationState,
    NotificationTransport,
    PostedMessage,
    SlackTransport,
    StatusNotifier,
)

__all__ = [
    "NotificationState",
    "NotificationTransport",
    "PostedMessage",
    "SlackTransport",
    "StatusNotifier",
]
