from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Optional

CLOCK_EMOJIS: tuple[str, ...] = tuple(
    emoji
    for hour in range(1, 13)
    for emoji in (f":clock{hour}:", f":clock{hour}30:")
)

_DURATION_PATTERN = re.compile(r"^(?:(?P<h>\d+)h)?(?:(?P<m>\d+)m)?(?P<s>\d+)s$")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_duration(seconds: float) -> str:
    """Render a duration as ``1h2m3s``, ``2m3s`` or ``3s``.

    Negative input is treated as zero and sub-minute durations never render
    below ``1s``.
    """

    total = max(0, _round_half_up(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h{minutes}m{secs}s"
    if minutes > 0:
        return f"{minutes}m{secs}s"
    return f"{max(secs, 1)}s"


def parse_duration(text: str) -> int:
    match = _DURATION_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"unsupported duration: {text!r}")
    hours = int(match.group("h") or 0)
    minutes = int(match.group("m") or 0)
    return hours * 3600 + minutes * 60 + int(match.group("s"))


def elapsed_seconds(start: Optional[datetime], end: datetime) -> float:
    if start is None:
        return 0.0
    return max(0.0, (end - start).total_seconds())


def clock_emoji(seconds: float) -> str:
    bucket = int(max(0.0, seconds) // 10)
    return CLOCK_EMOJIS[bucket % len(CLOCK_EMOJIS)]
