from __future__ import annotations

import threading
from datetime import date, datetime, timezone

import pytest

from classbook.domain.errors import InvalidStateError, MalformedInputError, StoreUnavailableError
from classbook.domain.models import BookableInstance, InstanceId, weekday_label
from classbook.repository.slot_store import (
    OwnerLockRegistry,
    SlotStore,
    availability_document,
    splice_day,
)

from conftest import PROF


def _instance(day: date, hour: int, room: str = "Room-A", **overrides) -> BookableInstance:
    values = {
        "instance_id": InstanceId(day, hour, room, PROF),
        "weekday": weekday_label(day),
        "duration_minutes": 60,
    }
    values.update(overrides)
    return BookableInstance(**values)


def _booked(day: date, hour: int, room: str = "Room-A") -> BookableInstance:
    return _instance(
        day,
        hour,
        room,
        booked_by="student@academy.test",
        booking_timestamp=datetime(2030, 1, 1, 12, tzinfo=timezone.utc),
    )


def test_splice_day_leaves_other_dates_untouched():
    monday, tuesday = date(2030, 1, 7), date(2030, 1, 8)
    existing = [_instance(monday, 8), _booked(tuesday, 9), _instance(tuesday, 10)]
    spliced = splice_day(existing, monday, [_instance(monday, 8, available=True)])

    assert [(item.date, item.hour) for item in spliced] == [(monday, 8), (tuesday, 9), (tuesday, 10)]
    assert spliced[0].available is True
    assert spliced[1] == existing[1]
    assert spliced[2] == existing[2]


def test_splice_day_keeps_orphaned_same_day_instances():
    monday = date(2030, 1, 7)
    orphan = _booked(monday, 9, "Room B")
    spliced = splice_day([orphan], monday, [_instance(monday, 8)])
    assert orphan in spliced


def test_splice_day_rejects_instances_of_another_date():
    with pytest.raises(MalformedInputError):
        splice_day([], date(2030, 1, 7), [_instance(date(2030, 1, 8), 8)])


def test_writes_are_kept_in_date_hour_room_order(harness):
    monday, tuesday = date(2030, 1, 7), date(2030, 1, 8)
    harness.slot_store.replace_instances(
        PROF,
        [_instance(tuesday, 7), _instance(monday, 9), _instance(monday, 9, "Room B"), _instance(monday, 8)],
    )
    stored = harness.store.read(availability_document(PROF), [])
    assert [(entry["date"], entry["hour"], entry["room"]) for entry in stored] == [
        ("2030-01-07", "08:00", "Room-A"),
        ("2030-01-07", "09:00", "Room B"),
        ("2030-01-07", "09:00", "Room-A"),
        ("2030-01-08", "07:00", "Room-A"),
    ]


def test_malformed_stored_entries_are_dropped(harness):
    good = _instance(date(2030, 1, 7), 8).to_document()
    broken_invariant = dict(good, id=None, hour="09:00", booked_by="x@academy.test", available=False)
    foreign = _instance(date(2030, 1, 7), 10).to_document() | {
        "instructor_id": "someone@academy.test",
        "id": None,
    }
    harness.store.write(availability_document(PROF), [good, {"garbage": True}, broken_invariant, foreign])

    instances = harness.slot_store.get_instances(PROF)
    assert [instance.hour for instance in instances] == [8]


def test_atomic_update_writes_nothing_when_mutation_fails(harness):
    monday = date(2030, 1, 7)
    harness.slot_store.replace_instances(PROF, [_instance(monday, 8)])
    _, version_before = harness.store.read_versioned(availability_document(PROF), [])

    def mutate(current):
        raise InvalidStateError("nope")

    with pytest.raises(InvalidStateError):
        harness.slot_store.atomic_update(PROF, mutate)
    _, version_after = harness.store.read_versioned(availability_document(PROF), [])
    assert version_after == version_before


def test_atomic_update_returns_mutation_result(harness):
    monday = date(2030, 1, 7)

    def mutate(current):
        opened = _instance(monday, 8, available=True)
        return [*current, opened], opened

    result = harness.slot_store.atomic_update(PROF, mutate)
    assert harness.slot_store.get_instances(PROF) == [result]
    assert harness.slot_store.list_instructors() == [PROF]


def test_lock_timeout_surfaces_as_store_unavailable(harness):
    locks = OwnerLockRegistry()
    store = SlotStore(harness.store, lock_timeout_seconds=0.05, locks=locks)
    held = threading.Event()
    release = threading.Event()

    def hold_lock():
        with locks.hold(PROF, timeout=1.0):
            held.set()
            release.wait(timeout=5.0)

    worker = threading.Thread(target=hold_lock)
    worker.start()
    try:
        assert held.wait(timeout=5.0)
        with pytest.raises(StoreUnavailableError):
            store.atomic_update(PROF, lambda current: (current, None))
    finally:
        release.set()
        worker.join()
