import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from noir_scheduler import config
from noir_scheduler.assignment import validate_party_size
from noir_scheduler.catalog import candidate_tables
from noir_scheduler.conflicts import ConflictSet, fetch_bookings, latest_end
from noir_scheduler.errors import InvalidRequest
from noir_scheduler.intervals import venue_zone, window_from
from noir_scheduler.models import Table, TimeInterval
from noir_scheduler.store import RowStore

logger = logging.getLogger(__name__)


def _scan_table(
    table: Table,
    conflict_set: ConflictSet,
    earliest: datetime,
    limit: datetime,
    duration_minutes: int,
    best: Optional[datetime],
    clock: Callable[[], float],
) -> Optional[datetime]:
    """Walks one table forward from `earliest`; returns the first free start not after `limit`."""
    step = timedelta(minutes=config.SLOT_INCREMENT_MINUTES)
    deadline = clock() + config.SEARCH_TIMEOUT_SECONDS
    probe = earliest
    probes = 0

    while probe <= limit:
        if best is not None and probe >= best:
            return None
        if clock() > deadline:
            logger.warning(f"Search on table {table.id} timed out after {probes} probes; treating it as unavailable")
            return None
        probes += 1

        conflicts = conflict_set.conflicts_for(table.id, window_from(probe, duration_minutes))
        if not conflicts:
            logger.debug(f"Table {table.id} free at {probe.isoformat()} after {probes} probes")
            return probe
        # Nothing can start before every booking overlapping this probe has ended.
        probe = max(probe + step, latest_end(conflicts))

    return None


def next_available(
    store: RowStore,
    earliest: datetime,
    duration_minutes: int,
    party_size: int,
    horizon: timedelta | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[datetime]:
    """Earliest start at or after `earliest` where some qualifying table is free for `duration_minutes`.

    Probes advance by the slot increment, jumping past known bookings, and stop at
    `earliest + horizon` (seven days by default). Bookings for the whole horizon are fetched
    once. Returns None if nothing fits.
    """
    validate_party_size(party_size)
    if duration_minutes <= 0:
        raise InvalidRequest("Duration must be greater than 0")
    if horizon is None:
        horizon = timedelta(days=config.SEARCH_HORIZON_DAYS)
    if earliest.tzinfo is None:
        earliest = earliest.replace(tzinfo=venue_zone())

    tables = candidate_tables(store, party_size)
    if not tables:
        logger.info(f"No table seats a party of {party_size}; skipping search")
        return None

    limit = earliest + horizon
    span = TimeInterval(start=earliest, end=limit + timedelta(minutes=duration_minutes))
    conflict_set = fetch_bookings(store, span)

    best: Optional[datetime] = None
    for table in tables:
        found = _scan_table(table, conflict_set, earliest, limit, duration_minutes, best, clock)
        if found is not None and (best is None or found < best):
            best = found
            if best == earliest:
                break

    if best is None:
        logger.info(f"No availability for party of {party_size} within {horizon} of {earliest.isoformat()}")
    else:
        logger.info(f"Next available time for party of {party_size}: {best.isoformat()}")
    return best
