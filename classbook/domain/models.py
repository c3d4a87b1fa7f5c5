"""Domain models for the weekly template and dated bookable instances."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, tzinfo
from enum import Enum
from typing import Any, Mapping

from classbook.domain.errors import MalformedInputError


WEEKDAYS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def weekday_label(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


class SlotState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    BOOKED = "booked"


@dataclass(frozen=True)
class ScheduleCell:
    """One (weekday, hour, room) position of the weekly grid."""

    weekday: str
    hour: int
    room: str

    @property
    def key(self) -> str:
        return f"{self.weekday}-{format_hour(self.hour)}-{self.room}"


@dataclass(frozen=True)
class ScheduleAssignment:
    cell: ScheduleCell
    instructor_id: str

    @property
    def is_assigned(self) -> bool:
        return bool(self.instructor_id)


@dataclass(frozen=True, order=True)
class InstanceId:
    """Composite identity of a dated slot; ordering follows listing order."""

    date: date
    hour: int
    room: str
    instructor_id: str

    @property
    def key(self) -> str:
        return f"{self.date.isoformat()}-{format_hour(self.hour)}-{self.room}-{self.instructor_id}"


@dataclass(frozen=True)
class BookableInstance:
    instance_id: InstanceId
    weekday: str
    duration_minutes: int
    available: bool = False
    booked_by: str | None = None
    booking_timestamp: datetime | None = None

    @property
    def key(self) -> str:
        return self.instance_id.key

    @property
    def date(self) -> date:
        return self.instance_id.date

    @property
    def hour(self) -> int:
        return self.instance_id.hour

    @property
    def room(self) -> str:
        return self.instance_id.room

    @property
    def instructor_id(self) -> str:
        return self.instance_id.instructor_id

    @property
    def is_booked(self) -> bool:
        return bool(self.booked_by)

    @property
    def state(self) -> SlotState:
        if self.is_booked:
            return SlotState.BOOKED
        if self.available:
            return SlotState.OPEN
        return SlotState.CLOSED

    def starts_at(self, zone: tzinfo) -> datetime:
        """Return the lesson start as an aware datetime in the institution zone."""
        return datetime.combine(self.date, time(hour=self.hour), tzinfo=zone)

    def with_availability(self, available: bool) -> BookableInstance:
        return replace(self, available=available)

    def with_booking(self, actor_id: str, booked_at: datetime) -> BookableInstance:
        return replace(self, available=False, booked_by=actor_id, booking_timestamp=booked_at)

    def without_booking(self) -> BookableInstance:
        return replace(self, available=True, booked_by=None, booking_timestamp=None)

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.key,
            "date": self.date.isoformat(),
            "weekday": self.weekday,
            "hour": format_hour(self.hour),
            "room": self.room,
            "duration_minutes": self.duration_minutes,
            "available": self.available,
            "booked_by": self.booked_by,
            "booking_timestamp": (
                self.booking_timestamp.isoformat() if self.booking_timestamp else None
            ),
            "instructor_id": self.instructor_id,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> BookableInstance:
        """Parse a stored entry; any shape problem raises MalformedInputError."""
        if not isinstance(document, Mapping):
            raise MalformedInputError("instance entry must be an object")
        try:
            slot_date = date.fromisoformat(str(document["date"]))
            hour = parse_hour(str(document["hour"]))
            room = str(document["room"])
            instructor_id = str(document["instructor_id"])
            duration = int(document.get("duration_minutes", 60))
            available = document.get("available", False)
            booked_by = document.get("booked_by") or None
            raw_timestamp = document.get("booking_timestamp") or None
            booking_timestamp = (
                datetime.fromisoformat(str(raw_timestamp)) if raw_timestamp else None
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedInputError(f"instance entry is malformed: {exc}") from exc

        if not isinstance(available, bool):
            raise MalformedInputError("instance 'available' must be a boolean")
        if not room or not instructor_id:
            raise MalformedInputError("instance room and instructor_id must be non-empty")

        instance = cls(
            instance_id=InstanceId(
                date=slot_date,
                hour=hour,
                room=room,
                instructor_id=instructor_id,
            ),
            weekday=weekday_label(slot_date),
            duration_minutes=duration,
            available=available,
            booked_by=str(booked_by) if booked_by else None,
            booking_timestamp=booking_timestamp,
        )
        stored_id = document.get("id")
        if stored_id is not None and stored_id != instance.key:
            raise MalformedInputError(
                f"instance id {stored_id!r} does not match its fields ({instance.key!r})"
            )
        return instance


def parse_hour(value: str) -> int:
    """Parse an 'HH:00' label; minutes other than zero are rejected."""
    hour_text, separator, minute_text = value.partition(":")
    if separator != ":" or minute_text != "00" or not hour_text.isdigit():
        raise ValueError(f"hour must follow HH:00 format, got {value!r}")
    hour = int(hour_text)
    if not 0 <= hour <= 23:
        raise ValueError(f"hour out of range: {value!r}")
    return hour
