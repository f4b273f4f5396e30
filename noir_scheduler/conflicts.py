import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from noir_scheduler.errors import StorageUnavailable
from noir_scheduler.intervals import overlaps
from noir_scheduler.models import Booking, TableId, TimeInterval
from noir_scheduler.store import RowStore

logger = logging.getLogger(__name__)

RESERVATIONS = "reservations"
PRIVATE_EVENTS = "private_events"


class ConflictSet:
    """Bookings fetched for a time range, partitioned by table in memory."""

    def __init__(self, bookings: Iterable[Booking]):
        self.bookings = [b for b in bookings if not b.cancelled]
        self.venue_wide = [b for b in self.bookings if b.venue_wide]
        self.by_table: Dict[str, List[Booking]] = {}
        for booking in self.bookings:
            if not booking.venue_wide:
                self.by_table.setdefault(str(booking.table_id), []).append(booking)

    def __len__(self):
        return len(self.bookings)

    def conflicts_for(self, table_id: Optional[TableId], window: TimeInterval) -> List[Booking]:
        """Bookings overlapping `window` on this table, plus venue-wide blocks.

        With `table_id=None` every booking counts, since a venue-wide block collides with all tables.
        """
        if table_id is None:
            candidates = self.bookings
        else:
            candidates = self.by_table.get(str(table_id), []) + self.venue_wide
        return [b for b in candidates if overlaps(b.interval, window)]

    def is_free(self, table_id: TableId, window: TimeInterval) -> bool:
        return not self.conflicts_for(table_id, window)


def _row_interval(row: Dict, source: str) -> TimeInterval | None:
    try:
        start, end = parse_instant(row.get("start_time")), parse_instant(row.get("end_time"))
    except (TypeError, ValueError) as e:
        raise StorageUnavailable(f"{source} row {row.get('id')} has unreadable times: {e}") from e
    if start >= end:
        # An empty or inverted span overlaps nothing.
        logger.warning(f"Ignoring {source} row {row.get('id')} with non-positive span {start} - {end}")
        return None
    return TimeInterval(start=start, end=end)


def parse_instant(value) -> datetime:
    """Parses a timestamptz value; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
    else:
        raise ValueError(f"not a timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def booking_from_reservation(row: Dict) -> Booking | None:
    interval = _row_interval(row, RESERVATIONS)
    if interval is None:
        return None
    return Booking(
        table_id=row.get("table_id"),
        interval=interval,
        cancelled=row.get("status") == "cancelled",
        source="reservation",
    )


def booking_from_event(row: Dict) -> Booking | None:
    interval = _row_interval(row, PRIVATE_EVENTS)
    if interval is None:
        return None
    return Booking(
        table_id=None,
        interval=interval,
        cancelled=row.get("status", "active") != "active",
        source="event",
    )


def _overlap_filters(window: TimeInterval) -> list:
    return [("start_time", "lt", window.end), ("end_time", "gt", window.start)]


def fetch_bookings(store: RowStore, window: TimeInterval) -> ConflictSet:
    """Fetches every reservation and private event overlapping `window` in one query per source.

    Cancelled reservations are dropped here rather than in the query so rows with a NULL
    status are never filtered out by the backend.
    """
    reservation_rows = store.query(RESERVATIONS, _overlap_filters(window))
    event_rows = store.query(PRIVATE_EVENTS, _overlap_filters(window) + [("status", "eq", "active")])

    bookings = [booking_from_reservation(r) for r in reservation_rows]
    bookings += [booking_from_event(r) for r in event_rows]
    conflict_set = ConflictSet(b for b in bookings if b is not None)

    logger.debug(
        f"Fetched {len(reservation_rows)} reservations and {len(event_rows)} events "
        f"for {window.start.isoformat()} - {window.end.isoformat()}; {len(conflict_set)} active"
    )
    return conflict_set


def conflicts_for(store: RowStore, table_id: Optional[TableId], window: TimeInterval) -> List[Booking]:
    return fetch_bookings(store, window).conflicts_for(table_id, window)


def latest_end(bookings: Iterable[Booking]) -> Optional[datetime]:
    ends = [b.interval.end for b in bookings]
    return max(ends) if ends else None
