import logging
from typing import List

from noir_scheduler import config
from noir_scheduler.models import Table
from noir_scheduler.store import RowStore

logger = logging.getLogger(__name__)

TABLES = "tables"


def candidate_tables(store: RowStore, min_capacity: int) -> List[Table]:
    """Returns bookable tables seating at least `min_capacity`, smallest first.

    Tables of equal capacity keep the store's id order.
    """
    rows = store.query(TABLES, [("seats", "gte", min_capacity)], order="seats.asc,id.asc")
    tables = [Table.from_row(row) for row in rows]

    candidates = [
        t
        for t in tables
        if t.bookable and t.capacity >= min_capacity and t.number not in config.EXCLUDED_TABLE_NUMBERS
    ]
    candidates.sort(key=lambda t: t.capacity)

    logger.debug(f"{len(candidates)} candidate tables for party of {min_capacity}: {[t.id for t in candidates]}")
    return candidates
