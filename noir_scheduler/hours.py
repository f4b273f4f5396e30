"""
Venue opening hours: base weekly hours, exceptional closures and opens, the booking window,
and full-day private events. All rows come from the row store.
"""
import json
import logging
from datetime import date
from typing import Dict, List, Optional

from pydantic import ValidationError

from noir_scheduler.conflicts import PRIVATE_EVENTS
from noir_scheduler.errors import StorageUnavailable
from noir_scheduler.intervals import day_interval, subtract_ranges
from noir_scheduler.models import BookingWindow, TimeRange
from noir_scheduler.store import RowStore

logger = logging.getLogger(__name__)

VENUE_HOURS = "venue_hours"
SETTINGS = "settings"


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday, the numbering stored in venue_hours."""
    return (day.weekday() + 1) % 7


def parse_time_ranges(value) -> List[TimeRange]:
    """Reads a time_ranges column, stored either as a JSON list or a JSON-encoded string."""
    if not value:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise StorageUnavailable(f"Unreadable time_ranges value: {value!r}") from e
    try:
        return [TimeRange(**r) for r in value]
    except (TypeError, ValidationError) as e:
        raise StorageUnavailable(f"Malformed time_ranges value: {value!r}") from e


def booking_window(store: RowStore) -> BookingWindow:
    rows = store.query(SETTINGS, [("key", "in", ["booking_start_date", "booking_end_date"])])
    values: Dict[str, str] = {r["key"]: r.get("value") for r in rows}
    try:
        return BookingWindow(
            start_date=values.get("booking_start_date") or None,
            end_date=values.get("booking_end_date") or None,
        )
    except ValidationError as e:
        raise StorageUnavailable(f"Malformed booking window settings: {values}") from e


def exceptional_closure(store: RowStore, day: date) -> Optional[Dict]:
    rows = store.query(VENUE_HOURS, [("type", "eq", "exceptional_closure"), ("date", "eq", day)])
    return rows[0] if rows else None


def is_full_day_closure(closure: Optional[Dict]) -> bool:
    # A closure row without time ranges closes the whole day.
    return bool(closure) and (bool(closure.get("full_day")) or not closure.get("time_ranges"))


def base_ranges(store: RowStore, day: date) -> List[TimeRange]:
    rows = store.query(VENUE_HOURS, [("type", "eq", "base"), ("day_of_week", "eq", day_of_week(day))])
    ranges: List[TimeRange] = []
    for row in rows:
        ranges.extend(parse_time_ranges(row.get("time_ranges")))
    return ranges


def exceptional_open_ranges(store: RowStore, day: date) -> List[TimeRange]:
    """Ranges of an exceptional open for `day`. Reported only; open_ranges does not apply them."""
    rows = store.query(VENUE_HOURS, [("type", "eq", "exceptional_open"), ("date", "eq", day)])
    ranges: List[TimeRange] = []
    for row in rows:
        ranges.extend(parse_time_ranges(row.get("time_ranges")))
    return ranges


def has_full_day_event(store: RowStore, day: date) -> bool:
    span = day_interval(day)
    rows = store.query(
        PRIVATE_EVENTS,
        [
            ("status", "eq", "active"),
            ("full_day", "eq", True),
            ("start_time", "lt", span.end),
            ("end_time", "gt", span.start),
        ],
    )
    return bool(rows)


def open_ranges(store: RowStore, day: date) -> List[TimeRange]:
    """The venue-local time ranges in which reservations may start on `day`.

    Empty when the day is outside the booking window, fully closed, taken by a full-day
    private event, or has no base hours.
    """
    if not booking_window(store).contains(day):
        logger.info(f"{day} is outside the booking window")
        return []

    closure = exceptional_closure(store, day)
    if is_full_day_closure(closure):
        logger.info(f"{day} has a full-day exceptional closure")
        return []

    if has_full_day_event(store, day):
        logger.info(f"{day} is taken by a full-day private event")
        return []

    ranges = base_ranges(store, day)
    if not ranges:
        logger.info(f"No base hours for {day} (day_of_week={day_of_week(day)})")
        return []

    if closure:
        closed = parse_time_ranges(closure.get("time_ranges"))
        ranges = subtract_ranges(ranges, closed)
        logger.debug(f"Partial closure on {day}: {[r.model_dump() for r in closed]}")

    return ranges
