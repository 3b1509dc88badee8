"""
Timestamp utilities for consistent time handling across memory records.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime] = None) -> str:
    """Convert a datetime to the ISO-8601 string stored in documents.

    Args:
        value: Datetime to convert (optional, uses current UTC time if None)

    Returns:
        ISO-8601 timestamp string
    """
    if value is None:
        value = utc_now()
    return value.isoformat()
