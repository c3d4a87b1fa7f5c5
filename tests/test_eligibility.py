from __future__ import annotations

import pytest

from classbook.domain.errors import MalformedInputError
from classbook.repository.assignment_repository import USERS_DOCUMENT
from classbook.services.eligibility_service import EligibilityResolver

from conftest import PEER, PROF, STUDENT


def test_eligibility_follows_assignment_relation(harness):
    resolver = EligibilityResolver(harness.assignments)
    harness.schedule.set_assigned_instructors(STUDENT, [PROF, PEER])

    assert resolver.eligible_instructors(STUDENT) == (PEER, PROF)
    assert resolver.can_book(STUDENT, PROF)
    assert resolver.can_book(STUDENT, PEER)
    assert not resolver.can_book(PEER, PROF)
    assert resolver.eligible_instructors("nobody@academy.test") == ()


def test_actor_never_eligible_for_themselves(harness):
    harness.store.write(USERS_DOCUMENT, {PROF: {"assigned_instructors": [PROF, PEER]}})
    resolver = EligibilityResolver(harness.assignments)
    assert resolver.eligible_instructors(PROF) == (PEER,)
    assert not resolver.can_book(PROF, PROF)


def test_empty_actor_cannot_book(harness):
    resolver = EligibilityResolver(harness.assignments)
    assert not resolver.can_book("", PROF)


def test_self_assignment_is_rejected_by_admin_workflow(harness):
    with pytest.raises(MalformedInputError):
        harness.schedule.set_assigned_instructors(PROF, [PROF])


def test_assignment_list_is_normalized(harness):
    stored = harness.schedule.set_assigned_instructors(STUDENT, [" prof@academy.test ", PROF, "", PEER])
    assert stored == (PEER, PROF)
    assert harness.schedule.assigned_instructors(STUDENT) == (PEER, PROF)


def test_malformed_users_entries_are_ignored(harness):
    harness.store.write(
        USERS_DOCUMENT,
        {
            STUDENT: {"assigned_instructors": "prof@academy.test"},
            PEER: ["not", "an", "object"],
            "mixed@academy.test": {"assigned_instructors": [PROF, 7, ""]},
        },
    )
    assert harness.assignments.assigned_instructors(STUDENT) == ()
    assert harness.assignments.assigned_instructors(PEER) == ()
    assert harness.assignments.assigned_instructors("mixed@academy.test") == (PROF,)


def test_assignment_update_keeps_other_user_fields(harness):
    harness.store.write(USERS_DOCUMENT, {STUDENT: {"display_name": "Student", "assigned_instructors": []}})
    harness.assignments.set_assigned_instructors(STUDENT, [PROF])
    users = harness.store.read(USERS_DOCUMENT, {})
    assert users[STUDENT] == {"display_name": "Student", "assigned_instructors": [PROF]}
