"""
Interval and instant helpers shared by the availability and validation code.

All instants handled here are timezone-aware. Arithmetic that moves an
instant is done in UTC so that DST transitions in the operating timezone
never duplicate or skip a lesson start.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Return True if half-open intervals ``[a_start, a_end)`` and ``[b_start, b_end)`` overlap.

    Back-to-back intervals (one ends exactly when the other starts) do not overlap.
    """
    return a_start < b_end and a_end > b_start


def shift(instant: datetime, delta: timedelta) -> datetime:
    """Move an aware instant by an absolute amount of time, keeping its timezone."""
    return (instant.astimezone(timezone.utc) + delta).astimezone(instant.tzinfo)


def local_instant(day: date, time_of_day: time, tz: ZoneInfo) -> datetime:
    """Build the aware instant for a wall-clock time on ``day`` in ``tz``."""
    return datetime.combine(day, time_of_day, tzinfo=tz)


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Return ``[start, end)`` instants covering ``day`` in ``tz``."""
    start = local_instant(day, time.min, tz)
    end = local_instant(day + timedelta(days=1), time.min, tz)
    return start, end


def local_today(now: datetime, tz: ZoneInfo) -> date:
    return now.astimezone(tz).date()


def parse_instant(value: object, tz: ZoneInfo) -> Optional[datetime]:
    """Parse an ISO-8601 instant and express it in ``tz``.

    Returns None for anything that is not an aware datetime or a string
    carrying an explicit UTC offset; naive timestamps are rejected.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        return None
    return parsed.astimezone(tz)


def parse_day(value: object, tz: ZoneInfo) -> Optional[date]:
    """Parse a calendar date given as ``YYYY-MM-DD`` or as a full ISO instant.

    A full instant is converted to ``tz`` before taking its date.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    instant = parse_instant(raw, tz)
    return instant.date() if instant else None


def serialize_instant(instant: datetime, tz: ZoneInfo) -> str:
    """Format an instant in ``tz`` as ISO-8601 without microseconds."""
    return instant.astimezone(tz).replace(microsecond=0).isoformat()
