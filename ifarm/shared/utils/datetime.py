"""Timezone-aware datetime helpers.

All timestamps stored or compared by the service are UTC-aware. SQLite (used
in tests) hands back naive datetimes, so values read from the database are
normalised with ensure_utc().
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string (accepting a trailing 'Z') into aware UTC"""
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
