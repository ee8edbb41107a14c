"""
Utility functions for timestamps.

Registration timestamps are stored as naive UTC datetimes (SQLite keeps no
offset); these helpers convert at the edges.
"""

from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the storage format."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage_datetime(value) -> datetime:
    """
    Normalize a date or datetime to the naive UTC storage format.
    Plain dates become midnight of that day.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime(value.year, value.month, value.day)


def format_day(value: Optional[date]) -> str:
    """Format a date or datetime as YYYY-MM-DD (empty string for None)."""
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")
