from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone

import pytest

from classbook.domain.models import InstanceId, ScheduleCell
from classbook.repository.assignment_repository import AssignmentRepository
from classbook.repository.document_store import DocumentStore
from classbook.repository.slot_store import SlotStore
from classbook.repository.template_registry import TemplateRegistry
from classbook.services.availability_service import AvailabilityService
from classbook.services.booking_service import BookingEngine
from classbook.services.eligibility_service import EligibilityResolver
from classbook.services.notification_service import BookingNotifier, LoggingNotificationDispatcher
from classbook.services.schedule_service import ScheduleService
from classbook.utils.config import Settings, get_settings


# 2030-01-01 is a Tuesday; 2030-01-07 is the following Monday.
NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
MONDAY = date(2030, 1, 7)
PROF = "prof@academy.test"
PEER = "peer@academy.test"
STUDENT = "student@academy.test"
OTHER_STUDENT = "other@academy.test"
MONDAY_0800_ROOM_A = ScheduleCell(weekday="Monday", hour=8, room="Room-A")


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


def build_test_settings(tmp_path, filename: str = "classbook.db", **overrides) -> Settings:
    get_settings.cache_clear()
    base = get_settings()
    values = {
        "database_path": tmp_path / filename,
        "store_timeout_seconds": 5.0,
        "admin_token": None,
        "timezone": "UTC",
        "first_hour": 7,
        "last_hour": 22,
        "rooms": ("Room-A", "Room B"),
        "slot_duration_minutes": 60,
        "self_cancellation_notice_hours": 24,
        "notification_backend": "log",
    }
    values.update(overrides)
    return replace(base, **values)


def instance_ref(
    day: date = MONDAY,
    hour: int = 8,
    room: str = "Room-A",
    instructor_id: str = PROF,
) -> InstanceId:
    return InstanceId(date=day, hour=hour, room=room, instructor_id=instructor_id)


@dataclass
class Harness:
    settings: Settings
    clock: FixedClock
    store: DocumentStore
    registry: TemplateRegistry
    assignments: AssignmentRepository
    slot_store: SlotStore
    dispatcher: LoggingNotificationDispatcher
    availability: AvailabilityService
    engine: BookingEngine
    schedule: ScheduleService


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def harness(tmp_path, clock) -> Harness:
    settings = build_test_settings(tmp_path)
    store = DocumentStore(settings)
    store.initialize_database()
    registry = TemplateRegistry(store)
    assignments = AssignmentRepository(store)
    slot_store = SlotStore(store, lock_timeout_seconds=settings.store_timeout_seconds)
    eligibility = EligibilityResolver(assignments)
    dispatcher = LoggingNotificationDispatcher()
    notifier = BookingNotifier(dispatcher, timezone.utc)
    return Harness(
        settings=settings,
        clock=clock,
        store=store,
        registry=registry,
        assignments=assignments,
        slot_store=slot_store,
        dispatcher=dispatcher,
        availability=AvailabilityService(
            registry=registry,
            slot_store=slot_store,
            eligibility=eligibility,
            settings=settings,
            clock=clock,
        ),
        engine=BookingEngine(
            slot_store=slot_store,
            registry=registry,
            eligibility=eligibility,
            notifier=notifier,
            settings=settings,
            clock=clock,
        ),
        schedule=ScheduleService(
            registry=registry,
            assignments=assignments,
            slot_store=slot_store,
            settings=settings,
            clock=clock,
        ),
    )


@pytest.fixture
def seeded(harness: Harness) -> Harness:
    """PROF owns Monday 08:00 Room-A; STUDENT, OTHER_STUDENT and PEER may book from PROF."""
    harness.schedule.assign("Monday", 8, "Room-A", PROF)
    harness.assignments.set_assigned_instructors(STUDENT, [PROF])
    harness.assignments.set_assigned_instructors(OTHER_STUDENT, [PROF])
    harness.assignments.set_assigned_instructors(PEER, [PROF])
    return harness
