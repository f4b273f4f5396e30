import logging
from typing import List, Optional

from noir_scheduler.catalog import candidate_tables
from noir_scheduler.conflicts import ConflictSet, fetch_bookings
from noir_scheduler.errors import InvalidRequest
from noir_scheduler.models import AssignmentOutcome, Table, TableId, TimeInterval
from noir_scheduler.store import RowStore

logger = logging.getLogger(__name__)


def validate_party_size(party_size: int):
    if not isinstance(party_size, int) or isinstance(party_size, bool) or party_size <= 0:
        raise InvalidRequest("Party size must be greater than 0")


def pick_table(tables: List[Table], conflict_set: ConflictSet, window: TimeInterval) -> Optional[Table]:
    """First table, in catalog order, with nothing booked against it during `window`."""
    for table in tables:
        conflicts = conflict_set.conflicts_for(table.id, window)
        if not conflicts:
            return table
        logger.debug(f"Table {table.id} busy: {len(conflicts)} conflicting bookings")
    return None


def find_table(
    store: RowStore,
    window: TimeInterval,
    party_size: int,
    tables: Optional[List[Table]] = None,
    conflict_set: Optional[ConflictSet] = None,
) -> AssignmentOutcome:
    """Greedy smallest-fit table assignment.

    Candidates come from the catalog ordered by capacity. When no table is large enough the
    outcome is `party_too_large` and no bookings are fetched; when every candidate is taken
    it is `fully_booked`. Pre-fetched `tables` / `conflict_set` can be passed to avoid
    repeated round trips.
    """
    validate_party_size(party_size)

    if tables is None:
        tables = candidate_tables(store, party_size)
    if not tables:
        logger.info(f"No table seats a party of {party_size}")
        return AssignmentOutcome(reason="party_too_large")

    if conflict_set is None:
        conflict_set = fetch_bookings(store, window)

    table = pick_table(tables, conflict_set, window)
    if table is None:
        logger.info(
            f"All {len(tables)} candidate tables busy for {window.start.isoformat()} - {window.end.isoformat()}"
        )
        return AssignmentOutcome(reason="fully_booked")

    logger.info(f"Assigned table {table.id} (capacity {table.capacity}) to party of {party_size}")
    return AssignmentOutcome(table_id=table.id, reason="assigned")


def assign_table(store: RowStore, window: TimeInterval, party_size: int) -> Optional[TableId]:
    return find_table(store, window, party_size).table_id
