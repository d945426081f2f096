"""UTC time helpers.

SQLite drops tzinfo on round-trip while PostgreSQL keeps it, so every
comparison against a stored timestamp goes through as_utc().
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime.

    Naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
