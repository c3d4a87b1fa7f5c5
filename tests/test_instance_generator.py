from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from classbook.domain.errors import MalformedInputError
from classbook.domain.models import (
    BookableInstance,
    InstanceId,
    ScheduleAssignment,
    ScheduleCell,
    SlotState,
    parse_hour,
)
from classbook.services.instance_generator import expand, generate_instances


MONDAY = date(2030, 1, 7)
TODAY = date(2030, 1, 1)
PROF = "prof@academy.test"


def _assignment(weekday: str, hour: int, room: str, instructor_id: str = PROF) -> ScheduleAssignment:
    return ScheduleAssignment(cell=ScheduleCell(weekday, hour, room), instructor_id=instructor_id)


def _booked(identity: InstanceId) -> BookableInstance:
    return BookableInstance(
        instance_id=identity,
        weekday="Monday",
        duration_minutes=60,
        available=False,
        booked_by="student@academy.test",
        booking_timestamp=datetime(2029, 12, 20, 9, 30, tzinfo=timezone.utc),
    )


def test_expand_is_pure_and_deterministic() -> None:
    assignment = _assignment("Monday", 8, "Room-A")
    first = expand(assignment, MONDAY)
    second = expand(assignment, MONDAY)
    assert first == second
    assert first.key == second.key == "2030-01-07-08:00-Room-A-prof@academy.test"


def test_generated_identities_are_identical_across_calls() -> None:
    assignments = [_assignment("Monday", 8, "Room-A"), _assignment("Monday", 9, "Room B")]
    first = generate_instances(assignments=assignments, target_date=MONDAY, instructor_id=PROF, persisted=[], today=TODAY)
    second = generate_instances(assignments=assignments, target_date=MONDAY, instructor_id=PROF, persisted=[], today=TODAY)
    assert [item.key for item in first] == [item.key for item in second]


def test_new_instances_default_to_closed() -> None:
    [instance] = generate_instances(
        assignments=[_assignment("Monday", 8, "Room-A")],
        target_date=MONDAY,
        instructor_id=PROF,
        persisted=[],
        today=TODAY,
    )
    assert instance.state is SlotState.CLOSED
    assert instance.available is False
    assert instance.weekday == "Monday"
    assert instance.duration_minutes == 60


def test_only_matching_weekday_and_instructor_are_emitted() -> None:
    assignments = [
        _assignment("Monday", 8, "Room-A"),
        _assignment("Tuesday", 8, "Room-A"),
        _assignment("Monday", 10, "Room B", instructor_id="someone@academy.test"),
    ]
    instances = generate_instances(assignments=assignments, target_date=MONDAY, instructor_id=PROF, persisted=[], today=TODAY)
    assert [(item.hour, item.room) for item in instances] == [(8, "Room-A")]


def test_output_sorted_by_hour_then_room() -> None:
    assignments = [
        _assignment("Monday", 10, "Room-A"),
        _assignment("Monday", 8, "Room B"),
        _assignment("Monday", 8, "Room-A"),
    ]
    instances = generate_instances(assignments=assignments, target_date=MONDAY, instructor_id=PROF, persisted=[], today=TODAY)
    assert [(item.hour, item.room) for item in instances] == [(8, "Room B"), (8, "Room-A"), (10, "Room-A")]


def test_persisted_state_wins_over_defaults() -> None:
    assignment = _assignment("Monday", 8, "Room-A")
    persisted_open = BookableInstance(
        instance_id=expand(assignment, MONDAY),
        weekday="Monday",
        duration_minutes=60,
        available=True,
    )
    [instance] = generate_instances(
        assignments=[assignment],
        target_date=MONDAY,
        instructor_id=PROF,
        persisted=[persisted_open],
        today=TODAY,
    )
    assert instance.state is SlotState.OPEN


def test_past_dates_emit_only_booked_instances() -> None:
    past_monday = date(2029, 12, 31)
    booked_cell = _assignment("Monday", 8, "Room-A")
    empty_cell = _assignment("Monday", 9, "Room-A")
    instances = generate_instances(
        assignments=[booked_cell, empty_cell],
        target_date=past_monday,
        instructor_id=PROF,
        persisted=[_booked(expand(booked_cell, past_monday))],
        today=TODAY,
    )
    assert [item.hour for item in instances] == [8]
    assert instances[0].state is SlotState.BOOKED


def test_today_is_not_treated_as_past() -> None:
    tuesday = TODAY
    instances = generate_instances(
        assignments=[_assignment("Tuesday", 7, "Room-A")],
        target_date=tuesday,
        instructor_id=PROF,
        persisted=[],
        today=TODAY,
    )
    assert len(instances) == 1


def test_instance_document_round_trip_keeps_identity() -> None:
    original = _booked(InstanceId(MONDAY, 8, "Room-A", PROF))
    restored = BookableInstance.from_document(original.to_document())
    assert restored == original


@pytest.mark.parametrize(
    "document",
    [
        {"date": "2030-01-07", "hour": "08:00", "room": "Room-A"},
        {"date": "not-a-date", "hour": "08:00", "room": "Room-A", "instructor_id": PROF},
        {"date": "2030-01-07", "hour": "08:30", "room": "Room-A", "instructor_id": PROF},
        {"date": "2030-01-07", "hour": "08:00", "room": "Room-A", "instructor_id": PROF, "available": "yes"},
        {"id": "wrong", "date": "2030-01-07", "hour": "08:00", "room": "Room-A", "instructor_id": PROF},
        "just a string",
    ],
)
def test_malformed_documents_raise(document) -> None:
    with pytest.raises(MalformedInputError):
        BookableInstance.from_document(document)


def test_parse_hour_rejects_minutes_and_range() -> None:
    assert parse_hour("07:00") == 7
    with pytest.raises(ValueError):
        parse_hour("7:30")
    with pytest.raises(ValueError):
        parse_hour("24:00")
