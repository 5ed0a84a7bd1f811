"""
Time helpers shared by the rules and services.

Timestamps are stored as naive UTC. Calendar days are resolved in the
parent's timezone, never the server's.
"""
from datetime import date, datetime, timezone

import pytz


def utcnow() -> datetime:
    """Current time as naive UTC, the storage format for every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def get_zone(name: str | None, fallback: str = "UTC"):
    try:
        return pytz.timezone(name or fallback)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(fallback)


def local_today(now: datetime, tz_name: str | None) -> date:
    """Calendar day of ``now`` (naive UTC or aware) in the named timezone."""
    aware = pytz.utc.localize(now) if now.tzinfo is None else now
    return aware.astimezone(get_zone(tz_name)).date()


def is_valid_timezone(name: str) -> bool:
    return name in pytz.all_timezones_set
