"""UTC-everywhere time handling."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere. Token expiry checks
    compare against this value, so tests patch it in one place.
    """
    return datetime.now(timezone.utc)


def from_timestamp(ts: int | float) -> datetime:
    """Convert a POSIX timestamp (JWT iat/exp) to a UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)
