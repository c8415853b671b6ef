"""
Date helpers for scheduling reminders.

Instants travel through the job as ISO 8601 strings, the way the Notion API
returns them. Output is always normalised to UTC ("YYYY-MM-DDTHH:MM:SSZ").
Weekdays are evaluated in a fixed timezone using the short codes Mon..Sun.
"""
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

WEEKDAY_CODES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

DEFAULT_TZ = ZoneInfo("Africa/Lagos")
DEFAULT_WEEKEND = ("Sat", "Sun")

Instant = Union[str, datetime]


def parse_iso(value: Instant) -> datetime:
    """
    Parse a Notion date value into an aware datetime.

    Accepts a trailing "Z", explicit offsets, fractional seconds and
    date-only values. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_iso_utc(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def current_weekday_short(tz: tzinfo = DEFAULT_TZ, now: Optional[Instant] = None) -> str:
    """Return the weekday of ``now`` in ``tz`` as a short code, e.g. "Mon"."""
    moment = utc_now() if now is None else parse_iso(now)
    return WEEKDAY_CODES[moment.astimezone(tz).weekday()]


def add_days(value: Instant, days: int) -> str:
    """Shift an instant by ``days`` * 24h and return it as UTC ISO."""
    return to_iso_utc(parse_iso(value) + timedelta(days=days))


def next_business_day(
    value: Instant,
    tz: tzinfo = DEFAULT_TZ,
    weekend: Iterable[str] = DEFAULT_WEEKEND,
) -> str:
    """
    Return the first instant 1..7 days after ``value`` that does not fall on
    a weekend day in ``tz``. The UTC clock time is kept; only the date moves.

    Falls back to the following day if every probe lands on a weekend day,
    which only happens when ``weekend`` covers the whole week.
    """
    weekend = set(weekend)
    start = parse_iso(value)
    for offset in range(1, 8):
        candidate = start + timedelta(days=offset)
        if WEEKDAY_CODES[candidate.astimezone(tz).weekday()] not in weekend:
            return to_iso_utc(candidate)
    return add_days(start, 1)
