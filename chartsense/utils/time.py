"""Time utilities (UTC)."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MICROSECOND = timedelta(microseconds=1)


def now_utc() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are interpreted as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_micros(dt: datetime) -> int:
    """Exact integer microseconds since the Unix epoch."""
    return (as_utc(dt) - EPOCH) // ONE_MICROSECOND


def from_epoch_micros(value: int) -> datetime:
    return EPOCH + timedelta(microseconds=value)


def to_iso_z(dt: datetime) -> str:
    """
    ISO-8601 string in UTC with millisecond precision and a Z suffix,
    e.g. 2024-01-01T00:01:00.000Z
    """
    return as_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 instant (Z suffix accepted) into aware UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(value))


def resolve_zone_name(name: Optional[str], default: str) -> str:
    """Return `name` if it is a known IANA zone, otherwise `default`."""
    if not name:
        return default
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return name


def now_utc_naive() -> datetime:
    """
    Current time in UTC, returned as naive datetime for DB storage.
    """
    return now_utc().replace(tzinfo=None)
