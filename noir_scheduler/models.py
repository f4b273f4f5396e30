from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, field_validator, model_validator

from noir_scheduler import config

TableId = int | str


def as_venue_time(value: datetime) -> datetime:
    """Naive datetimes are read as venue-local wall time."""
    if value.tzinfo is None:
        return value.replace(tzinfo=ZoneInfo(config.VENUE_TIMEZONE))
    return value


class Table(BaseModel):
    id: TableId
    capacity: int
    number: str | None = None
    bookable: bool = True

    @classmethod
    def from_row(cls, row: Dict) -> "Table":
        """Builds a Table from a `tables` row (`seats` / `table_number` columns)."""
        capacity = row.get("seats", row.get("capacity"))
        number = row.get("table_number", row.get("number"))
        bookable = row.get("bookable")
        return cls(
            id=row["id"],
            capacity=capacity,
            number=str(number) if number is not None else None,
            bookable=True if bookable is None else bookable,
        )


class TimeInterval(BaseModel):
    """Half-open [start, end) span between two instants."""

    start: datetime
    end: datetime

    @field_validator("start", "end", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return as_venue_time(v)

    @model_validator(mode="after")
    def check_order(self) -> "TimeInterval":
        if self.start >= self.end:
            raise ValueError(f"Interval start {self.start.isoformat()} must be before end {self.end.isoformat()}")
        return self


class Booking(BaseModel):
    table_id: TableId | None = None  # None blocks every table
    interval: TimeInterval
    cancelled: bool = False
    source: Literal["reservation", "event"] = "reservation"

    @property
    def venue_wide(self) -> bool:
        return self.table_id is None


class AvailabilityRequest(BaseModel):
    date: date
    party_size: int

    @field_validator("party_size")
    @classmethod
    def check_party_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("party_size must be greater than 0")
        return v


class TimeRange(BaseModel):
    start: str  # HH:MM, venue local time
    end: str  # HH:MM, venue local time

    @field_validator("start", "end", mode="before")
    @classmethod
    def normalize_time(cls, v: str) -> str:
        # Postgres `time` columns come back as HH:MM:SS
        parts = str(v).strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time of day '{v}', expected HH:MM")
        hour, minute = int(parts[0]), int(parts[1])
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Invalid time of day '{v}', expected HH:MM")
        return f"{hour:02d}:{minute:02d}"


class BookingWindow(BaseModel):
    start_date: date | None = None
    end_date: date | None = None

    def contains(self, day: date) -> bool:
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True


class AssignmentOutcome(BaseModel):
    table_id: TableId | None = None
    reason: Literal["assigned", "party_too_large", "fully_booked"]

    @property
    def assigned(self) -> bool:
        return self.table_id is not None


class AlternativeTimes(BaseModel):
    requested_time: str
    before: str | None = None
    after: str | None = None
    message: str


class ReservationRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    party_size: int
    phone: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    notes: str | None = None
    source: str | None = None
    extra: Dict = {}

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return as_venue_time(v)

    @field_validator("party_size")
    @classmethod
    def check_party_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("party_size must be greater than 0")
        return v

    @model_validator(mode="after")
    def check_window(self) -> "ReservationRequest":
        if self.start_time >= self.end_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def window(self) -> TimeInterval:
        return TimeInterval(start=self.start_time, end=self.end_time)


class SlotsResponse(BaseModel):
    slots: List[str]


class NoTableResponse(BaseModel):
    error: str = "No available table"
    next_available_time: Optional[str] = None
