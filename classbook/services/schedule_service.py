"""Admin workflow over the weekly template and the assignment relation."""

from __future__ import annotations

from typing import Iterable, Optional

from classbook.domain.constraints import validate_cell
from classbook.domain.errors import MalformedInputError
from classbook.domain.models import WEEKDAYS, BookableInstance, ScheduleAssignment, ScheduleCell, SlotState
from classbook.repository.assignment_repository import AssignmentRepository
from classbook.repository.slot_store import SlotStore
from classbook.repository.template_registry import TemplateRegistry
from classbook.services.availability_service import scheduling_config_from
from classbook.utils.clock import Clock, institution_zone, system_clock
from classbook.utils.config import Settings, get_settings
from classbook.utils.logger import get_logger


logger = get_logger(__name__)


class ScheduleService:
    """Edits the grid.

    Reassigning or clearing a cell leaves booked instances with their owner
    and closes the previous owner's open, future instances of that cell.
    """

    def __init__(
        self,
        *,
        registry: TemplateRegistry,
        assignments: AssignmentRepository,
        slot_store: SlotStore,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = scheduling_config_from(self._settings)
        self._zone = institution_zone(self._settings)
        self._clock = clock or system_clock(self._zone)
        self._registry = registry
        self._assignments = assignments
        self._slot_store = slot_store

    def grid(self) -> list[ScheduleAssignment]:
        """Every configured cell in weekday, hour, room order; unassigned ones included."""
        assigned = {
            assignment.cell: assignment.instructor_id
            for assignment in self._registry.list_assignments()
        }
        return [
            ScheduleAssignment(cell=cell, instructor_id=assigned.get(cell, ""))
            for cell in (
                ScheduleCell(weekday=weekday, hour=hour, room=room)
                for weekday in WEEKDAYS
                for hour in self._config.hours
                for room in self._config.rooms
            )
        ]

    def assign(
        self,
        weekday: str,
        hour: int,
        room: str,
        instructor_id: Optional[str],
    ) -> ScheduleAssignment:
        cell = ScheduleCell(weekday=weekday, hour=hour, room=room)
        validate_cell(cell, self._config)
        previous_owner = self._registry.owner_of(cell)
        assignment = self._registry.set_assignment(cell, instructor_id)
        if previous_owner and previous_owner != assignment.instructor_id:
            self._close_open_instances(previous_owner, cell)
        return assignment

    def _close_open_instances(self, instructor_id: str, cell: ScheduleCell) -> int:
        today = self._clock().astimezone(self._zone).date()

        def matches(instance: BookableInstance) -> bool:
            return (
                instance.state is SlotState.OPEN
                and instance.date >= today
                and (instance.weekday, instance.hour, instance.room) == (cell.weekday, cell.hour, cell.room)
            )

        def mutate(current: list[BookableInstance]) -> tuple[list[BookableInstance], int]:
            closed = [instance.with_availability(False) if matches(instance) else instance for instance in current]
            return closed, sum(1 for instance in current if matches(instance))

        if not any(matches(instance) for instance in self._slot_store.get_instances(instructor_id)):
            return 0
        count = self._slot_store.atomic_update(instructor_id, mutate)
        logger.info("Closed %d open slot(s) of %s on %s after reassignment", count, instructor_id, cell.key)
        return count

    def assigned_instructors(self, actor_id: str) -> tuple[str, ...]:
        return self._assignments.assigned_instructors(actor_id)

    def set_assigned_instructors(self, actor_id: str, instructor_ids: Iterable[str]) -> tuple[str, ...]:
        instructor_ids = list(instructor_ids)
        if actor_id in instructor_ids:
            raise MalformedInputError("An actor cannot be assigned to themselves")
        return self._assignments.set_assigned_instructors(actor_id, instructor_ids)
