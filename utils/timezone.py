"""UTC-only datetimes. Every stored timestamp is timezone-aware UTC."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """The default clock for every service. Never use datetime.now()."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Normalize an aware datetime to UTC.

    Raises ValueError for naive datetimes: their zone is unknowable.
    """
    if dt.tzinfo is None:
        raise ValueError("Cannot convert naive datetime to UTC; attach a timezone first.")
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    """UTC ISO 8601 string for partial document writes."""
    return to_utc(dt).isoformat()
