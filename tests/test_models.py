from datetime import date, datetime

import pytest
from pydantic import ValidationError

from noir_scheduler.models import (
    AvailabilityRequest,
    BookingWindow,
    ReservationRequest,
    Table,
    TimeInterval,
    TimeRange,
)
from tests.conftest import CHICAGO, THURSDAY, at


def test_table_from_row_reads_seats_and_number():
    table = Table.from_row({"id": 7, "seats": "6", "table_number": 12})
    assert table.capacity == 6
    assert table.number == "12"
    assert table.bookable is True


def test_table_from_row_legacy_capacity_column():
    table = Table.from_row({"id": 1, "capacity": 4, "bookable": False})
    assert table.capacity == 4
    assert table.number is None
    assert table.bookable is False


def test_time_interval_rejects_inverted_span():
    with pytest.raises(ValidationError):
        TimeInterval(start=at(THURSDAY, "20:00"), end=at(THURSDAY, "19:00"))
    with pytest.raises(ValidationError):
        TimeInterval(start=at(THURSDAY, "20:00"), end=at(THURSDAY, "20:00"))


def test_time_interval_naive_is_venue_local():
    interval = TimeInterval(start=datetime(2025, 7, 10, 19, 0), end=datetime(2025, 7, 10, 20, 0))
    assert interval.start.tzinfo == CHICAGO
    assert interval.start == at(THURSDAY, "19:00")


def test_time_interval_parses_iso_strings():
    interval = TimeInterval(start="2025-07-11T00:00:00Z", end="2025-07-11T01:30:00+00:00")
    assert interval.start == at(THURSDAY, "19:00")


def test_availability_request_validation():
    request = AvailabilityRequest(date="2025-07-10", party_size="2")
    assert request.date == THURSDAY
    assert request.party_size == 2
    with pytest.raises(ValidationError):
        AvailabilityRequest(date="2025-07-10", party_size=0)
    with pytest.raises(ValidationError):
        AvailabilityRequest(date="not-a-date", party_size=2)


def test_time_range_normalizes_seconds():
    time_range = TimeRange(start="18:00:00", end="9:30")
    assert time_range.start == "18:00"
    assert time_range.end == "09:30"
    with pytest.raises(ValidationError):
        TimeRange(start="25:00", end="26:00")


def test_booking_window_contains():
    window = BookingWindow(start_date="2025-07-01", end_date="2025-07-31")
    assert window.contains(THURSDAY)
    assert not window.contains(date(2025, 6, 30))
    assert not window.contains(date(2025, 8, 1))
    assert BookingWindow().contains(date(2030, 1, 1))


def test_reservation_request_rejects_bad_window():
    with pytest.raises(ValidationError):
        ReservationRequest(start_time="2025-07-10T20:00:00", end_time="2025-07-10T19:00:00", party_size=2)
    with pytest.raises(ValidationError):
        ReservationRequest(start_time="2025-07-10T19:00:00", end_time="2025-07-10T20:00:00", party_size=-1)
