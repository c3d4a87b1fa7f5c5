"""Who may book from whom."""

from __future__ import annotations

from classbook.repository.assignment_repository import AssignmentRepository


class EligibilityResolver:
    """Pure lookup over the assignment relation; never mutates it."""

    def __init__(self, assignments: AssignmentRepository) -> None:
        self._assignments = assignments

    def eligible_instructors(self, actor_id: str) -> tuple[str, ...]:
        return tuple(
            instructor_id
            for instructor_id in self._assignments.assigned_instructors(actor_id)
            if instructor_id != actor_id
        )

    def can_book(self, actor_id: str, instructor_id: str) -> bool:
        if not actor_id or actor_id == instructor_id:
            return False
        return instructor_id in self._assignments.assigned_instructors(actor_id)
