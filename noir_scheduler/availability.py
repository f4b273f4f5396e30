import logging
from datetime import date, timedelta
from typing import Dict, List, Tuple

from pydantic import ValidationError

from noir_scheduler import config
from noir_scheduler.assignment import pick_table, validate_party_size
from noir_scheduler.catalog import candidate_tables
from noir_scheduler.conflicts import fetch_bookings
from noir_scheduler.errors import InvalidRequest
from noir_scheduler.hours import open_ranges
from noir_scheduler.intervals import local_instant, quantize_slots, window_from
from noir_scheduler.models import AlternativeTimes, AvailabilityRequest, SlotsResponse, TimeInterval
from noir_scheduler.store import RowStore

logger = logging.getLogger(__name__)

SlotFlags = List[Tuple[str, bool]]


def sitting_minutes(party_size: int) -> int:
    """Length of a sitting: small parties get the standard slot, larger ones the long one."""
    if party_size <= config.SMALL_PARTY_MAX_SIZE:
        return config.SLOT_DURATION_MINUTES
    return config.LARGE_PARTY_DURATION_MINUTES


def candidate_slots(store: RowStore, day: date) -> List[str]:
    """All 15-minute-aligned start times inside the day's open ranges, in order."""
    slots = {slot for time_range in open_ranges(store, day) for slot in quantize_slots(time_range)}
    return sorted(slots)


def slot_flags(store: RowStore, day: date, party_size: int) -> SlotFlags:
    """Pairs every candidate slot with whether some table can take the party for a full sitting."""
    validate_party_size(party_size)
    slots = candidate_slots(store, day)
    if not slots:
        return []

    tables = candidate_tables(store, party_size)
    if not tables:
        logger.info(f"No table seats a party of {party_size}; no slots on {day}")
        return [(slot, False) for slot in slots]

    duration = sitting_minutes(party_size)
    first = local_instant(day, slots[0])
    last = local_instant(day, slots[-1])
    conflict_set = fetch_bookings(store, TimeInterval(start=first, end=last + timedelta(minutes=duration)))

    flags: SlotFlags = []
    for slot in slots:
        window = window_from(local_instant(day, slot), duration)
        flags.append((slot, pick_table(tables, conflict_set, window) is not None))
    return flags


def open_slots(store: RowStore, day: date, party_size: int) -> List[str]:
    """Bookable HH:MM start times on `day` for a party of `party_size`."""
    slots = [slot for slot, available in slot_flags(store, day, party_size) if available]
    logger.info(f"{len(slots)} open slots on {day} for party of {party_size}")
    return slots


def parse_availability_request(day, party_size) -> AvailabilityRequest:
    if not day or not party_size:
        raise InvalidRequest("date and party_size are required")
    try:
        return AvailabilityRequest(date=day, party_size=party_size)
    except ValidationError as e:
        raise InvalidRequest(f"Invalid availability request: {e.errors()[0]['msg']}") from e


def availability_response(store: RowStore, day, party_size) -> Dict:
    """The `{"slots": [...]}` body answered to availability requests."""
    request = parse_availability_request(day, party_size)
    slots = open_slots(store, request.date, request.party_size)
    return SlotsResponse(slots=slots).model_dump()


def alternative_times(store: RowStore, day: date, party_size: int, requested_time: str) -> AlternativeTimes:
    """Nearest open slots before and after `requested_time` on the same day."""
    flags = slot_flags(store, day, party_size)
    times = [slot for slot, _ in flags]
    if requested_time not in times:
        raise InvalidRequest(f"Requested time {requested_time} is not a bookable slot on {day}")

    index = times.index(requested_time)
    before = next((slot for slot, ok in reversed(flags[:index]) if ok), None)
    after = next((slot for slot, ok in flags[index + 1:] if ok), None)

    if before or after:
        message = "The requested time is not available. Here are the nearest available times:"
    else:
        message = "No alternative times available for this date."
    return AlternativeTimes(requested_time=requested_time, before=before, after=after, message=message)
