"""Time arithmetic for the 24-hour day grid."""

import re
from datetime import date, datetime, time, timedelta

from errors import ValidationError

MINUTES_PER_DAY = 24 * 60

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str) -> time:
    """Parse an "HH:mm" 24-hour string, e.g. "14:30"."""
    match = _HHMM.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(f"Invalid time '{value}', expected HH:mm")
    return time(int(match.group(1)), int(match.group(2)))


def combine_day(day: date, hhmm: str) -> datetime:
    return datetime.combine(day, parse_hhmm(hhmm))


def default_slot(day: date, hour: int) -> tuple[datetime, datetime]:
    """One-hour slot starting at ``hour``, used when an empty grid cell is picked."""
    if not 0 <= hour <= 23:
        raise ValidationError(f"Hour out of range: {hour}")
    start = datetime.combine(day, time(hour))
    end = start + timedelta(hours=1)
    if end.date() != day:
        end = datetime.combine(day, time(23, 59))
    return start, end


def minutes_since_midnight(value: datetime) -> int:
    return value.hour * 60 + value.minute


def span_minutes(start: datetime, end: datetime, day: date) -> tuple[int, int]:
    """
    Start and end of an item in minutes since midnight of ``day``.

    An end that falls on a later date is cut at midnight; the day the item is
    filed under always wins over its end time.
    """
    if end < start:
        raise ValidationError(f"End {end:%Y-%m-%d %H:%M} is before start {start:%Y-%m-%d %H:%M}")
    start_min = minutes_since_midnight(start)
    if end.date() > start.date() or end.date() > day:
        end_min = MINUTES_PER_DAY
    else:
        end_min = minutes_since_midnight(end)
    if end_min < start_min:
        raise ValidationError(
            f"End time {end:%H:%M} is before start time {start:%H:%M}"
        )
    return start_min, end_min


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Midnight to midnight; the grid always spans the full 24 hours."""
    start = datetime.combine(day, time(0))
    return start, start + timedelta(days=1)


def grid_height(row_height: float) -> float:
    return 24 * row_height


def hour_at_offset(offset: float, row_height: float) -> int:
    """Hour row under a vertical pixel offset, clamped to the day."""
    if row_height <= 0:
        raise ValidationError("row_height must be positive")
    return max(0, min(23, int(offset // row_height)))
