"""Datetime utilities for common operations."""

from datetime import datetime, date, timedelta, timezone
from typing import Optional


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    SQLite hands back naive values for timezone-aware columns; everything
    written by this service is UTC, so the missing offset is always UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def days_between(start: datetime | date, end: datetime | date) -> int:
    """
    Calculate number of days between two dates.

    Args:
        start: Start date
        end: End date

    Returns:
        Number of days
    """
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()

    return (end - start).days


def is_past(dt: datetime, reference: Optional[datetime] = None) -> bool:
    """Check if a datetime lies before the reference (defaults to now)."""
    reference = reference or now()
    return ensure_utc(dt) < reference


def is_due_within(
    dt: datetime, days: int, reference: Optional[datetime] = None
) -> bool:
    """
    Check if a datetime falls between the reference and `days` days after it.

    Args:
        dt: Datetime to check
        days: Window length in days
        reference: Start of the window, defaults to now

    Returns:
        True if dt is not past and within the window
    """
    reference = reference or now()
    dt = ensure_utc(dt)
    return reference <= dt <= reference + timedelta(days=days)
