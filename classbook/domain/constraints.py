"""Domain-level validation rules for scheduling and slot state."""

from __future__ import annotations

from dataclasses import dataclass

from classbook.domain.errors import MalformedInputError
from classbook.domain.models import WEEKDAYS, BookableInstance, ScheduleCell


@dataclass(frozen=True)
class SchedulingConfig:
    first_hour: int
    last_hour: int
    rooms: tuple[str, ...]
    slot_duration_minutes: int
    self_cancellation_notice_hours: int

    @property
    def hours(self) -> range:
        return range(self.first_hour, self.last_hour + 1)


def validate_scheduling_config(config: SchedulingConfig) -> None:
    if not 0 <= config.first_hour <= 23:
        raise ValueError("first_hour must be between 0 and 23")
    if not config.first_hour <= config.last_hour <= 23:
        raise ValueError("last_hour must be between first_hour and 23")
    if not config.rooms:
        raise ValueError("rooms must contain at least one room")
    if any(not room.strip() for room in config.rooms):
        raise ValueError("room names must be non-blank")
    if len(set(config.rooms)) != len(config.rooms):
        raise ValueError("room names must be unique")
    if config.slot_duration_minutes != 60:
        raise ValueError("slot_duration_minutes must be 60")
    if config.self_cancellation_notice_hours < 0:
        raise ValueError("self_cancellation_notice_hours must be >= 0")


def validate_cell(cell: ScheduleCell, config: SchedulingConfig) -> None:
    """Reject cells outside the configured grid."""
    if cell.weekday not in WEEKDAYS:
        raise MalformedInputError(f"unknown weekday {cell.weekday!r}")
    if cell.hour not in config.hours:
        raise MalformedInputError(
            f"hour {cell.hour} outside {config.first_hour:02d}:00-{config.last_hour:02d}:00"
        )
    if cell.room not in config.rooms:
        raise MalformedInputError(f"unknown room {cell.room!r}")


def validate_instance_invariants(instance: BookableInstance) -> None:
    """booked_by set <=> not available <=> booking_timestamp set, for booked slots."""
    if instance.booked_by:
        if instance.available:
            raise MalformedInputError(f"instance {instance.key} is booked and available")
        if instance.booking_timestamp is None:
            raise MalformedInputError(f"instance {instance.key} is booked without a timestamp")
    elif instance.booking_timestamp is not None:
        raise MalformedInputError(f"instance {instance.key} has a timestamp but no booker")
