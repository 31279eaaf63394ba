"""Time window parsing for conversation queries (core domain)."""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

# "m" is a 30-day month, not minutes.
_UNIT_MS = {
    "h": HOUR_MS,
    "d": DAY_MS,
    "w": 7 * DAY_MS,
    "m": 30 * DAY_MS,
}

_RELATIVE = re.compile(r"^(\d+)([hdwm])$", re.IGNORECASE)

DEFAULT_WINDOW_MS = DAY_MS


def now_ms() -> int:
    return int(time.time() * 1000)


def _parse_iso(value: str) -> Optional[int]:
    candidate = value.strip()
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def parse_since(value: Optional[str], now: Optional[int] = None) -> int:
    """Return an epoch cutoff in milliseconds for a time specifier.

    Supported forms:
    - ISO-8601 dates/datetimes ("2024-05-01", "2024-05-01T10:00:00Z")
    - relative windows: 24h, 7d, 2w, 1m (m = 30 days)

    Anything else falls back to the last 24 hours.
    """

    current = now_ms() if now is None else now
    text = (value or "").strip()

    if "-" in text or "T" in text:
        parsed = _parse_iso(text)
        if parsed is not None:
            return parsed

    match = _RELATIVE.match(text)
    if match:
        amount = int(match.group(1))
        unit = match.group(2).lower()
        return current - amount * _UNIT_MS[unit]

    return current - DEFAULT_WINDOW_MS


def message_timestamp_ms(record: Mapping[str, Any]) -> int:
    """Normalize a record's messageTimestamp (seconds) to milliseconds.

    The gateway sends plain ints, numeric strings or protobuf Long objects
    serialized as {"low": ..., "high": ...}. Unknown shapes map to 0.
    """

    ts = record.get("messageTimestamp")
    if isinstance(ts, bool):
        return 0
    if isinstance(ts, (int, float)):
        return int(ts) * 1000
    if isinstance(ts, str):
        try:
            return int(ts) * 1000
        except ValueError:
            return 0
    if isinstance(ts, Mapping) and "low" in ts:
        try:
            return int(ts["low"]) * 1000
        except (TypeError, ValueError):
            return 0
    return 0
