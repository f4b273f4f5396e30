"""
Reservation creation as seen by the request handler that owns the write.

Assignment is optimistic: the chosen table is re-checked right before the insert, and a
conflict found then (or a constraint violation raised by the store) is a lost race that is
answered like "no table", with the next available time.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from noir_scheduler import config
from noir_scheduler.assignment import find_table
from noir_scheduler.catalog import candidate_tables
from noir_scheduler.conflicts import RESERVATIONS, conflicts_for
from noir_scheduler.errors import ConstraintViolation, InvalidRequest, RaceLost
from noir_scheduler.models import NoTableResponse, ReservationRequest, Table, TableId, TimeInterval
from noir_scheduler.notifier import reservation_message
from noir_scheduler.search import next_available
from noir_scheduler.store import RowStore

logger = logging.getLogger(__name__)

STATUS_CREATED = 201
STATUS_CONFLICT = 409

Notify = Callable[[str, str], bool]


@dataclass
class BookingOutcome:
    status_code: int
    body: Dict

    @property
    def booked(self) -> bool:
        return self.status_code == STATUS_CREATED


def parse_reservation_request(data: Dict | ReservationRequest) -> ReservationRequest:
    if isinstance(data, ReservationRequest):
        return data
    try:
        return ReservationRequest(**data)
    except (TypeError, ValidationError) as e:
        raise InvalidRequest(f"Invalid reservation request: {e}") from e


def recheck(store: RowStore, table_id: TableId, window: TimeInterval):
    """Fresh conflict check for the chosen table; raises RaceLost if it was taken meanwhile."""
    conflicts = conflicts_for(store, table_id, window)
    if conflicts:
        raise RaceLost(f"Table {table_id} was booked for an overlapping window before the insert")


def _reservation_row(request: ReservationRequest, table_id: TableId) -> Dict:
    row = {
        "start_time": request.start_time.isoformat(),
        "end_time": request.end_time.isoformat(),
        "party_size": request.party_size,
        "table_id": table_id,
        "phone": request.phone,
        "email": request.email,
        "first_name": request.first_name,
        "last_name": request.last_name,
        "notes": request.notes,
        "source": request.source,
    }
    row.update(request.extra)
    return row


def no_table_response(store: RowStore, request: ReservationRequest, reason: str) -> BookingOutcome:
    next_time = None
    if reason != "party_too_large":
        duration = int((request.end_time - request.start_time).total_seconds() // 60)
        found = next_available(store, request.start_time, duration, request.party_size)
        next_time = found.isoformat() if found else None
    body = NoTableResponse(next_available_time=next_time).model_dump()
    body["reason"] = reason
    return BookingOutcome(status_code=STATUS_CONFLICT, body=body)


def _send_notifications(notify: Notify, reservation: Dict, table: Optional[Table]):
    message = reservation_message(reservation, table.number if table else None)
    recipients: List[str] = [reservation.get("phone"), config.ADMIN_PHONE]
    for recipient in recipients:
        if not recipient:
            continue
        if not notify(recipient, message):
            logger.warning(f"Reservation {reservation.get('id')} notification to {recipient} failed")


def create_reservation(
    store: RowStore,
    data: Dict | ReservationRequest,
    notify: Optional[Notify] = None,
) -> BookingOutcome:
    """Assigns a table, re-checks it, inserts the reservation and sends notifications.

    Returns 201 with `{reservation, table_id}` or 409 with
    `{error, next_available_time, reason}`. InvalidRequest and StorageUnavailable propagate.
    """
    request = parse_reservation_request(data)
    window = request.window

    tables = candidate_tables(store, request.party_size)
    outcome = find_table(store, window, request.party_size, tables=tables)
    if not outcome.assigned:
        return no_table_response(store, request, outcome.reason)

    try:
        recheck(store, outcome.table_id, window)
        reservation = store.insert(RESERVATIONS, _reservation_row(request, outcome.table_id))
    except (RaceLost, ConstraintViolation) as e:
        logger.warning(f"Lost race for table {outcome.table_id}: {e}")
        return no_table_response(store, request, "fully_booked")

    logger.info(f"Created reservation {reservation.get('id')} on table {outcome.table_id}")

    if notify is not None:
        table = next((t for t in tables if t.id == outcome.table_id), None)
        _send_notifications(notify, reservation, table)

    return BookingOutcome(status_code=STATUS_CREATED, body={"reservation": reservation, "table_id": outcome.table_id})
