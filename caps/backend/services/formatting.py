"""Display formatting helpers. None of these raise on bad input."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

TIME_PLACEHOLDER = "--:--"
DATE_PLACEHOLDER = "Unknown date"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or epoch milliseconds into local time, or None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone()
        except (OverflowError, OSError, ValueError):
            return None
    return parsed


def format_clock(value: Any) -> str:
    """Hours and minutes, e.g. ``14:05``."""
    parsed = parse_timestamp(value)
    return parsed.strftime("%H:%M") if parsed else TIME_PLACEHOLDER


def format_local_time(value: Any) -> str:
    """Full local time of day, e.g. ``14:05:09``."""
    parsed = parse_timestamp(value)
    return parsed.strftime("%H:%M:%S") if parsed else TIME_PLACEHOLDER


def format_date(value: Any) -> str:
    parsed = parse_timestamp(value)
    return parsed.strftime("%d %b %Y") if parsed else DATE_PLACEHOLDER


def format_money(value: Optional[float], decimals: Optional[int] = None) -> str:
    """Rupee label. Without ``decimals`` the amount passes through unrounded."""
    if value is None:
        return "₹-"
    if decimals is None:
        amount = int(value) if float(value).is_integer() else value
        return f"₹{amount}"
    return f"₹{value:.{decimals}f}"
