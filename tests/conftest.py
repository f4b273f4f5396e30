from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from noir_scheduler import config
from noir_scheduler.store import InMemoryRowStore

CHICAGO = ZoneInfo("America/Chicago")
THURSDAY = date(2025, 7, 10)


def at(day: date, hhmm: str) -> datetime:
    hour, minute = hhmm.split(":")
    return datetime.combine(day, time(int(hour), int(minute)), tzinfo=CHICAGO)


@pytest.fixture(autouse=True)
def venue_settings(monkeypatch):
    """Pins the scheduling settings so environment variables cannot leak into tests."""
    monkeypatch.setattr(config, "VENUE_TIMEZONE", "America/Chicago")
    monkeypatch.setattr(config, "EXCLUDED_TABLE_NUMBERS", [])
    monkeypatch.setattr(config, "SLOT_INCREMENT_MINUTES", 15)
    monkeypatch.setattr(config, "SLOT_DURATION_MINUTES", 90)
    monkeypatch.setattr(config, "SMALL_PARTY_MAX_SIZE", 2)
    monkeypatch.setattr(config, "LARGE_PARTY_DURATION_MINUTES", 120)
    monkeypatch.setattr(config, "SEARCH_HORIZON_DAYS", 7)
    monkeypatch.setattr(config, "SEARCH_TIMEOUT_SECONDS", 5)


def reservation(id, table_id, day, start, end, status="confirmed"):
    return {
        "id": id,
        "table_id": table_id,
        "start_time": at(day, start).isoformat(),
        "end_time": at(day, end).isoformat(),
        "status": status,
        "party_size": 2,
    }


def private_event(id, start, end, full_day=False, status="active"):
    return {
        "id": id,
        "title": "Private party",
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        "full_day": full_day,
        "status": status,
    }


@pytest.fixture
def store():
    """Four tables (2, 4, 4, 8 seats) and Thursday hours 18:00-23:00."""
    return InMemoryRowStore(
        {
            "tables": [
                {"id": 1, "seats": 2, "table_number": "1"},
                {"id": 2, "seats": 4, "table_number": "2"},
                {"id": 3, "seats": 4, "table_number": "3"},
                {"id": 4, "seats": 8, "table_number": "4"},
            ],
            "reservations": [],
            "private_events": [],
            "venue_hours": [
                {"id": 1, "type": "base", "day_of_week": 4, "time_ranges": [{"start": "18:00", "end": "23:00"}]},
            ],
            "settings": [],
        }
    )
