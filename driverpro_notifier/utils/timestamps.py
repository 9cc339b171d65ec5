"""UTC timestamp helpers."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to UTC, treating naive datetimes as already being UTC.

    Example:
        >>> ensure_utc(datetime(2025, 3, 3, 14, 5)).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(iso_string: str) -> Optional[datetime]:
    """Parse an ISO 8601 string (``Z`` suffix, offset, naive or date-only) to UTC.

    Returns None when the string is blank or not ISO 8601.
    """
    if not iso_string or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith(("Z", "z")):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        return None


def format_timestamp(dt: datetime) -> str:
    """ISO 8601 in UTC with millisecond precision, e.g. ``2025-03-03T14:05:00.000Z``."""
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
