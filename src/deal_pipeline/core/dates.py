"""ISO-8601 helpers for the document-store wire format."""

from datetime import date, datetime
from typing import Optional, Union


def to_iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a date, accepting full timestamps as well."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if "T" in value:
        return datetime.fromisoformat(value).date()
    return date.fromisoformat(value)
