"""Date/time normalization for JSON-safe presenter output."""

import calendar
from datetime import date, datetime, timezone
from typing import Any


def to_epoch(dt: datetime) -> int:
    """
    Convert a datetime to integer Unix epoch seconds.

    Naive datetimes are treated as UTC, which is how SQLAlchemy hands back
    ``DateTime`` columns stored without a timezone.

    Example:
        >>> to_epoch(datetime(2025, 12, 23, tzinfo=timezone.utc))
        1766448000
    """
    if dt.tzinfo is None:
        return calendar.timegm(dt.timetuple())
    return calendar.timegm(dt.astimezone(timezone.utc).timetuple())


def to_iso_date(value: date) -> str:
    """Format a date as ``YYYY-MM-DD``."""
    return value.strftime("%Y-%m-%d")


def datetimes_to_json(struct: Any) -> Any:
    """
    Recursively convert dates and times in a nested structure.

    Dicts, lists and tuples are walked to any depth; ``date`` leaves become
    ``YYYY-MM-DD`` strings and ``datetime`` leaves become epoch integers.
    Every other leaf is returned unchanged.
    """
    if isinstance(struct, dict):
        return {key: datetimes_to_json(value) for key, value in struct.items()}
    if isinstance(struct, (list, tuple)):
        return [datetimes_to_json(value) for value in struct]
    # datetime subclasses date, so it must be checked first
    if isinstance(struct, datetime):
        return to_epoch(struct)
    if isinstance(struct, date):
        return to_iso_date(struct)
    return struct
