import logging
from datetime import date, datetime, time, timedelta
from typing import List, Tuple
from zoneinfo import ZoneInfo

from noir_scheduler import config
from noir_scheduler.models import TimeInterval, TimeRange

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """Half-open overlap test. Intervals that only touch at an endpoint do not overlap."""
    return a.start < b.end and b.start < a.end


def to_minutes(hhmm: str) -> int:
    hour, minute = hhmm.split(":")[:2]
    return int(hour) * 60 + int(minute)


def from_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def span_minutes(time_range: TimeRange) -> Tuple[int, int]:
    """A range as minutes since midnight. An end at or before the start means the range runs to midnight."""
    start = to_minutes(time_range.start)
    end = to_minutes(time_range.end)
    if end <= start:
        end = MINUTES_PER_DAY
    return start, end


def _range_from_minutes(start: int, end: int) -> TimeRange:
    return TimeRange(start=from_minutes(start), end=from_minutes(end % MINUTES_PER_DAY))


def subtract_ranges(ranges: List[TimeRange], closed: List[TimeRange]) -> List[TimeRange]:
    """Removes closed time-of-day ranges from open ones.

    A closure strictly inside an open range splits it into a before and an after piece;
    a closure covering the whole range removes it. Ranges closing at midnight are compared
    in minutes, so 18:00-00:00 still loses a 22:00-23:00 closure.
    """
    remaining = list(ranges)
    for closure in closed:
        closed_start, closed_end = span_minutes(closure)
        pieces: List[TimeRange] = []
        for open_range in remaining:
            open_start, open_end = span_minutes(open_range)
            if not (closed_start < open_end and open_start < closed_end):
                pieces.append(open_range)
                continue
            if closed_start > open_start:
                pieces.append(_range_from_minutes(open_start, closed_start))
            if closed_end < open_end:
                pieces.append(_range_from_minutes(closed_end, open_end))
        remaining = pieces
    return remaining


def quantize_slots(time_range: TimeRange, step_minutes: int | None = None) -> List[str]:
    """Lists the step-aligned HH:MM values inside a range, both endpoints included."""
    step = step_minutes or config.SLOT_INCREMENT_MINUTES
    start, end = span_minutes(time_range)
    # Closing at midnight: stop at the last slot of the day.
    end = min(end, MINUTES_PER_DAY - 1)

    first = -(-start // step) * step
    return [from_minutes(m) for m in range(first, end + 1, step)]


def venue_zone() -> ZoneInfo:
    return ZoneInfo(config.VENUE_TIMEZONE)


def local_instant(day: date, hhmm: str) -> datetime:
    """Combines a calendar date and an HH:MM time of day in the venue's timezone."""
    hour, minute = hhmm.split(":")[:2]
    return datetime.combine(day, time(int(hour), int(minute)), tzinfo=venue_zone())


def day_interval(day: date) -> TimeInterval:
    """The venue-local calendar day as a half-open interval."""
    start = datetime.combine(day, time(0, 0), tzinfo=venue_zone())
    return TimeInterval(start=start, end=start + timedelta(days=1))


def window_from(start: datetime, minutes: int) -> TimeInterval:
    return TimeInterval(start=start, end=start + timedelta(minutes=minutes))
