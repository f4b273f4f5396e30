from datetime import timedelta
from itertools import count
from unittest.mock import patch

import pytest

from noir_scheduler import conflicts, search
from noir_scheduler.errors import InvalidRequest
from noir_scheduler.intervals import window_from
from noir_scheduler.store import InMemoryRowStore
from tests.conftest import THURSDAY, at, private_event, reservation


@pytest.fixture
def single_table():
    return InMemoryRowStore({"tables": [{"id": 1, "seats": 4}], "reservations": [], "private_events": []})


def test_free_immediately(single_table):
    earliest = at(THURSDAY, "18:00")
    assert search.next_available(single_table, earliest, 90, 2) == earliest


def test_jumps_to_end_of_blocking_bookings(single_table):
    """Fully booked for three hours: the answer is the end of the last booking, not a probe inside it."""
    single_table.tables["reservations"] = [
        reservation(1, 1, THURSDAY, "18:00", "19:00"),
        reservation(2, 1, THURSDAY, "19:00", "20:00"),
        reservation(3, 1, THURSDAY, "20:00", "21:00"),
    ]
    found = search.next_available(single_table, at(THURSDAY, "18:00"), 90, 2)
    assert found == at(THURSDAY, "21:00")


def test_result_is_conflict_free_and_not_before_earliest(single_table):
    single_table.tables["reservations"] = [
        reservation(1, 1, THURSDAY, "18:10", "19:05"),
        reservation(2, 1, THURSDAY, "20:00", "21:00"),
    ]
    earliest = at(THURSDAY, "18:00")
    found = search.next_available(single_table, earliest, 60, 2)

    assert found is not None
    assert found >= earliest
    conflict_set = conflicts.fetch_bookings(single_table, window_from(found, 60))
    assert conflict_set.is_free(1, window_from(found, 60))


def test_gap_too_short_is_skipped(single_table):
    single_table.tables["reservations"] = [
        reservation(1, 1, THURSDAY, "18:00", "19:00"),
        reservation(2, 1, THURSDAY, "20:00", "22:00"),
    ]
    # 19:00-20:00 is only an hour; a 90 minute sitting fits from 22:00.
    assert search.next_available(single_table, at(THURSDAY, "18:00"), 90, 2) == at(THURSDAY, "22:00")


def test_minimum_across_tables(store):
    store.tables["reservations"] = [
        reservation(1, 2, THURSDAY, "18:00", "21:00"),
        reservation(2, 3, THURSDAY, "18:00", "19:30"),
        reservation(3, 4, THURSDAY, "18:00", "22:00"),
    ]
    assert search.next_available(store, at(THURSDAY, "18:00"), 90, 4) == at(THURSDAY, "19:30")


def test_venue_wide_event_delays_every_table(store):
    store.tables["private_events"] = [private_event(1, at(THURSDAY, "17:00"), at(THURSDAY, "21:00"))]
    assert search.next_available(store, at(THURSDAY, "18:00"), 90, 2) == at(THURSDAY, "21:00")


def test_nothing_within_horizon(single_table):
    single_table.tables["reservations"] = [
        {**reservation(1, 1, THURSDAY, "00:00", "00:00"), "end_time": (at(THURSDAY, "00:00") + timedelta(days=30)).isoformat()}
    ]
    found = search.next_available(single_table, at(THURSDAY, "18:00"), 90, 2, horizon=timedelta(days=7))
    assert found is None


def test_party_too_large_returns_none_without_fetching(single_table):
    with patch("noir_scheduler.search.fetch_bookings") as mock_fetch:
        assert search.next_available(single_table, at(THURSDAY, "18:00"), 90, 10) is None
        mock_fetch.assert_not_called()


def test_invalid_arguments(single_table):
    with pytest.raises(InvalidRequest):
        search.next_available(single_table, at(THURSDAY, "18:00"), 0, 2)
    with pytest.raises(InvalidRequest):
        search.next_available(single_table, at(THURSDAY, "18:00"), 90, 0)


@patch("noir_scheduler.search.config.SEARCH_TIMEOUT_SECONDS", 10)
def test_table_scan_is_timeboxed(single_table):
    single_table.tables["reservations"] = [
        reservation(i, 1, THURSDAY, f"{18 + i // 4:02d}:{(i % 4) * 15:02d}", f"{18 + (i + 1) // 4:02d}:{((i + 1) % 4) * 15:02d}")
        for i in range(20)
    ]
    # Each clock() call advances 3 seconds, so the budget runs out after a few probes.
    ticks = count(0, 3)
    found = search.next_available(single_table, at(THURSDAY, "18:00"), 15, 2, clock=lambda: next(ticks))
    assert found is None
