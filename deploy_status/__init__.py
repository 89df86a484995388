"""Live CI run status reporting to a single Slack message."""

from __future__ import annotations

__version__ = "0.1.0"
