"""Datetime utilities for consistent timezone handling across the application."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC time - standardized across the application.

    Returns:
        Current datetime in UTC timezone.
    """
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Get current UTC time as naive datetime for database operations.

    Returns:
        Current datetime in UTC as naive datetime (no timezone info).

    Note:
        The models use TIMESTAMP WITHOUT TIME ZONE columns, which always hold UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_unix_timestamp(seconds: Optional[int | float]) -> Optional[datetime]:
    """Convert a Stripe unix timestamp (seconds) to a naive UTC datetime.

    Args:
        seconds: Seconds since the epoch, or None.

    Returns:
        The naive UTC datetime, or None when no (or an unrepresentable) timestamp was given.
    """
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None
