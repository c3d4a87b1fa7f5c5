"""Instructor-facing listing and the open/closed availability toggle."""

from __future__ import annotations

from datetime import date
from typing import Optional

from classbook.domain.constraints import SchedulingConfig, validate_scheduling_config
from classbook.domain.errors import (
    BookingError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    TemporalViolationError,
)
from classbook.domain.models import (
    BookableInstance,
    InstanceId,
    ScheduleCell,
    SlotState,
    weekday_label,
)
from classbook.repository.slot_store import SlotStore, sort_instances, splice_day
from classbook.repository.template_registry import TemplateRegistry
from classbook.services.eligibility_service import EligibilityResolver
from classbook.services.instance_generator import generate_instances
from classbook.utils.clock import Clock, institution_zone, system_clock
from classbook.utils.config import Settings, get_settings
from classbook.utils.logger import get_logger, log_transition


logger = get_logger(__name__)


def scheduling_config_from(settings: Settings) -> SchedulingConfig:
    config = SchedulingConfig(
        first_hour=settings.first_hour,
        last_hour=settings.last_hour,
        rooms=tuple(settings.rooms),
        slot_duration_minutes=settings.slot_duration_minutes,
        self_cancellation_notice_hours=settings.self_cancellation_notice_hours,
    )
    validate_scheduling_config(config)
    return config


class AvailabilityService:
    """Generates an instructor's instances and applies CLOSED <-> OPEN toggles."""

    def __init__(
        self,
        *,
        registry: TemplateRegistry,
        slot_store: SlotStore,
        eligibility: EligibilityResolver,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = scheduling_config_from(self._settings)
        self._zone = institution_zone(self._settings)
        self._clock = clock or system_clock(self._zone)
        self._registry = registry
        self._slot_store = slot_store
        self._eligibility = eligibility

    def _today(self) -> date:
        return self._clock().astimezone(self._zone).date()

    def list_instances(self, instructor_id: str, target_date: date) -> list[BookableInstance]:
        """Instances visible to the owner on a date, ordered by hour then room."""
        return generate_instances(
            assignments=self._registry.assignments_for(instructor_id, weekday_label(target_date)),
            target_date=target_date,
            instructor_id=instructor_id,
            persisted=self._slot_store.get_instances(instructor_id),
            today=self._today(),
            duration_minutes=self._config.slot_duration_minutes,
        )

    def set_availability(
        self,
        instructor_id: str,
        instance_id: InstanceId,
        available: bool,
    ) -> BookableInstance:
        """Open or close one instance and persist the whole day for the owner."""
        try:
            updated = self._set_availability(instructor_id, instance_id, available)
        except BookingError as exc:
            log_transition(
                logger,
                action="set_availability",
                instance_key=instance_id.key,
                actor_id=instructor_id,
                outcome=exc.kind,
            )
            raise
        log_transition(
            logger,
            action="open" if available else "close",
            instance_key=updated.key,
            actor_id=instructor_id,
        )
        return updated

    def _set_availability(
        self,
        instructor_id: str,
        instance_id: InstanceId,
        available: bool,
    ) -> BookableInstance:
        if instance_id.instructor_id != instructor_id:
            raise ForbiddenError("Only the owning instructor can change a slot's availability")

        target_date = instance_id.date
        assignments = self._registry.assignments_for(instructor_id, weekday_label(target_date))
        today = self._today()

        def mutate(current: list[BookableInstance]) -> tuple[list[BookableInstance], BookableInstance]:
            persisted = next((item for item in current if item.key == instance_id.key), None)
            if persisted is not None and persisted.is_booked:
                raise InvalidStateError("Cannot change the availability of a booked slot")
            if target_date < today:
                raise TemporalViolationError("Cannot change availability for past dates")

            day = generate_instances(
                assignments=assignments,
                target_date=target_date,
                instructor_id=instructor_id,
                persisted=current,
                today=today,
                duration_minutes=self._config.slot_duration_minutes,
            )
            target = next((item for item in day if item.key == instance_id.key), None)
            if target is None:
                # a slot whose cell moved to someone else can still be closed, never reopened
                if persisted is not None and not available:
                    closed = persisted.with_availability(False)
                    return [closed if item.key == closed.key else item for item in current], closed
                raise NotFoundError(
                    f"No slot {instance_id.key} is assigned to {instructor_id} on the schedule"
                )

            updated = target.with_availability(available)
            replacements = [updated if item.key == updated.key else item for item in day]
            return splice_day(current, target_date, replacements), updated

        return self._slot_store.atomic_update(instructor_id, mutate)

    def list_booked_instances(self, instructor_id: str) -> list[BookableInstance]:
        """Every booked instance the instructor owns, including orphaned cells."""
        return [
            instance
            for instance in self._slot_store.get_instances(instructor_id)
            if instance.is_booked
        ]

    def list_bookable_instances(
        self,
        actor_id: str,
        on_date: Optional[date] = None,
    ) -> list[BookableInstance]:
        """Open, future instances of instructors the actor may book from.

        Instances whose template cell is no longer assigned to their owner are
        not offered.
        """
        now = self._clock()
        bookable: list[BookableInstance] = []
        for instructor_id in self._eligibility.eligible_instructors(actor_id):
            live_cells = {
                assignment.cell for assignment in self._registry.assignments_for(instructor_id)
            }
            for instance in self._slot_store.get_instances(instructor_id):
                if instance.state is not SlotState.OPEN:
                    continue
                if on_date is not None and instance.date != on_date:
                    continue
                if instance.starts_at(self._zone) < now:
                    continue
                cell = ScheduleCell(weekday=instance.weekday, hour=instance.hour, room=instance.room)
                if cell not in live_cells:
                    continue
                bookable.append(instance)
        return sort_instances(bookable)
