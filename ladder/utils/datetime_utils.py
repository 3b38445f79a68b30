"""
Datetime helpers. Timestamps are stored and returned in UTC.
"""

from datetime import datetime
from typing import Optional
import pytz


def utcnow() -> datetime:
    """Current time as an aware UTC datetime (pytz.UTC)."""
    return datetime.now(pytz.UTC)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """
    ISO 8601 string for an API response, or None.

    SQLite hands back naive datetimes for timezone-aware columns; those are
    taken to be UTC so both databases serialize the same way.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = pytz.UTC.localize(value)
    return value.isoformat()
