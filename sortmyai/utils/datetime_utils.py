"""
Datetime helpers.

All timestamps are stored and transmitted as UTC with explicit timezone
indicators. SQLite hands back naive datetimes, so anything read from the
database goes through ensure_utc before it is compared or serialized.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Use this instead of datetime.utcnow() to ensure timezone awareness.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure datetime is UTC timezone-aware.

    Naive datetimes are assumed to be UTC; aware ones are converted.

    Args:
        dt: Datetime object (naive or aware) or None

    Returns:
        datetime | None: UTC timezone-aware datetime or None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_iso_utc(dt: datetime | None) -> str | None:
    """
    Convert datetime to ISO format with 'Z' suffix.

    Example:
        >>> to_iso_utc(datetime(2025, 12, 16, 11, 30, tzinfo=timezone.utc))
        '2025-12-16T11:30:00Z'
    """
    if dt is None:
        return None

    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def newest_first_key(dt: datetime | None) -> float:
    """Sort key placing the most recent timestamp first; None sorts last."""
    if dt is None:
        return float("inf")
    return -ensure_utc(dt).timestamp()
