from __future__ import annotations

import pytest

from classbook.domain.errors import MalformedInputError
from classbook.domain.models import ScheduleCell
from classbook.repository.template_registry import SCHEDULE_DOCUMENT, parse_schedule_key

from conftest import PROF


def test_parse_key_keeps_hyphens_in_room_names():
    cell = parse_schedule_key("Monday-08:00-Room-A-annex")
    assert cell == ScheduleCell(weekday="Monday", hour=8, room="Room-A-annex")


@pytest.mark.parametrize(
    "key",
    ["Monday-08:00", "Funday-08:00-Room-A", "Monday-8-Room-A", "Monday-08:30-Room-A", "Monday-08:00-"],
)
def test_parse_key_rejects_malformed_keys(key):
    with pytest.raises(MalformedInputError):
        parse_schedule_key(key)


def test_malformed_entries_are_skipped_not_fatal(harness):
    harness.store.write(
        SCHEDULE_DOCUMENT,
        {
            "Monday-08:00-Room-A": {"instructor_id": PROF},
            "broken": {"instructor_id": PROF},
            "Tuesday-09:00-Room B": {"instructor_id": 42},
            "Wednesday-10:00-Room B": {"instructor_id": ""},
        },
    )
    assignments = harness.registry.list_assignments()
    assert [assignment.cell.key for assignment in assignments] == ["Monday-08:00-Room-A"]

    with_empty = harness.registry.list_assignments(include_unassigned=True)
    assert [assignment.cell.key for assignment in with_empty] == [
        "Monday-08:00-Room-A",
        "Wednesday-10:00-Room B",
    ]


def test_set_assignment_overwrites_and_clears(harness):
    cell = ScheduleCell(weekday="Monday", hour=8, room="Room-A")
    harness.registry.set_assignment(cell, PROF)
    assert harness.registry.owner_of(cell) == PROF

    harness.registry.set_assignment(cell, "other@academy.test")
    assert harness.registry.owner_of(cell) == "other@academy.test"

    harness.registry.set_assignment(cell, None)
    assert harness.registry.owner_of(cell) == ""
    assert harness.registry.assignments_for(PROF) == []


def test_schedule_service_rejects_cells_outside_grid(harness):
    with pytest.raises(MalformedInputError):
        harness.schedule.assign("Monday", 23, "Room-A", PROF)
    with pytest.raises(MalformedInputError):
        harness.schedule.assign("Monday", 8, "Gym", PROF)


def test_grid_lists_every_configured_cell(harness):
    harness.schedule.assign("Monday", 8, "Room-A", PROF)
    grid = harness.schedule.grid()
    # 7 weekdays x 16 hours (07..22) x 2 rooms
    assert len(grid) == 7 * 16 * 2
    assigned = [assignment for assignment in grid if assignment.is_assigned]
    assert [assignment.cell.key for assignment in assigned] == ["Monday-08:00-Room-A"]
