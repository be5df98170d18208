"""Time helpers: UTC clock, epoch conversions and recency decay."""

from datetime import UTC, datetime
from typing import Any, Optional

from dateutil import parser as date_parser

SECONDS_PER_DAY = 86_400


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def from_epoch_ms(value: Any) -> Optional[datetime]:
    """Convert a millisecond epoch (int, float or numeric string) to UTC."""
    if value is None or isinstance(value, bool):
        return None
    try:
        millis = float(value)
    except (TypeError, ValueError):
        return None
    try:
        return datetime.fromtimestamp(millis / 1000, UTC)
    except (OverflowError, OSError, ValueError):
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 string or millisecond epoch into an aware UTC datetime.

    Returns:
        Parsed datetime, or None if the value is missing or unparseable
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        return from_epoch_ms(value)
    if isinstance(value, str):
        try:
            return ensure_utc(date_parser.isoparse(value))
        except (ValueError, TypeError, OverflowError):
            return from_epoch_ms(value) if value.strip().isdigit() else None
    return None


def days_between(earlier: datetime, later: datetime) -> float:
    """Signed number of days from ``earlier`` to ``later``."""
    delta = ensure_utc(later) - ensure_utc(earlier)
    return delta.total_seconds() / SECONDS_PER_DAY


def recency_score(days_diff: float, window_days: float) -> float:
    """
    Linear recency decay: 1.0 at the same instant, 0.0 at the window edge.

    Args:
        days_diff: Days between the conversation update and the commit
        window_days: Size of the candidate window in days

    Returns:
        Score in [0, 1]
    """
    if window_days <= 0:
        return 0.0
    return max(0.0, min(1.0, 1.0 - days_diff / window_days))
