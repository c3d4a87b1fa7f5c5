"""Booking engine: OPEN -> BOOKED and BOOKED -> OPEN transitions."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from classbook.domain.errors import (
    BookingError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    SlotNoLongerAvailableError,
    TemporalViolationError,
)
from classbook.domain.models import BookableInstance, InstanceId, ScheduleCell, SlotState
from classbook.repository.slot_store import SlotStore, sort_instances
from classbook.repository.template_registry import TemplateRegistry
from classbook.services.eligibility_service import EligibilityResolver
from classbook.services.notification_service import BookingNotifier
from classbook.utils.clock import Clock, institution_zone, system_clock
from classbook.utils.config import Settings, get_settings
from classbook.utils.logger import get_logger, log_transition


logger = get_logger(__name__)


def _locate(instances: list[BookableInstance], instance_id: InstanceId) -> int:
    for index, instance in enumerate(instances):
        if instance.key == instance_id.key:
            return index
    raise NotFoundError(f"Slot {instance_id.key} not found")


class BookingEngine:
    """Applies booking and cancellation against the slot store.

    Every precondition is re-checked on the list read inside the owner's
    critical section, so two racing bookings of one slot cannot both win.
    Notifications go out after the write and never roll it back.
    """

    def __init__(
        self,
        *,
        slot_store: SlotStore,
        registry: TemplateRegistry,
        eligibility: EligibilityResolver,
        notifier: BookingNotifier,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._zone = institution_zone(self._settings)
        self._clock = clock or system_clock(self._zone)
        self._slot_store = slot_store
        self._registry = registry
        self._eligibility = eligibility
        self._notifier = notifier
        self._notice = timedelta(hours=self._settings.self_cancellation_notice_hours)

    def _is_live(self, instance: BookableInstance) -> bool:
        """True while the instance's grid cell is still assigned to its owner."""
        cell = ScheduleCell(weekday=instance.weekday, hour=instance.hour, room=instance.room)
        return self._registry.owner_of(cell) == instance.instructor_id

    def book(self, actor_id: str, instance_id: InstanceId) -> BookableInstance:
        owner_id = instance_id.instructor_id

        def mutate(current: list[BookableInstance]) -> tuple[list[BookableInstance], BookableInstance]:
            index = _locate(current, instance_id)
            instance = current[index]
            if instance.state is not SlotState.OPEN:
                raise SlotNoLongerAvailableError(f"Slot {instance.key} is no longer available")
            if not self._is_live(instance):
                raise SlotNoLongerAvailableError(
                    f"Slot {instance.key} is no longer on {owner_id}'s schedule"
                )
            now = self._clock()
            if instance.starts_at(self._zone) < now:
                raise TemporalViolationError(f"Slot {instance.key} is in the past")
            if not self._eligibility.can_book(actor_id, owner_id):
                raise ForbiddenError(f"{actor_id} is not allowed to book slots of {owner_id}")
            booked = instance.with_booking(actor_id, now)
            current[index] = booked
            return current, booked

        try:
            booked = self._slot_store.atomic_update(owner_id, mutate)
        except BookingError as exc:
            log_transition(logger, action="book", instance_key=instance_id.key, actor_id=actor_id, outcome=exc.kind)
            raise
        log_transition(logger, action="book", instance_key=booked.key, actor_id=actor_id)
        self._notifier.booking_confirmed(booked, actor_id)
        return booked

    def cancel(self, actor_id: str, instance_id: InstanceId) -> BookableInstance:
        """Cancel a booking as the booker (notice window applies) or the owner."""
        owner_id = instance_id.instructor_id

        def mutate(
            current: list[BookableInstance],
        ) -> tuple[list[BookableInstance], tuple[BookableInstance, str]]:
            index = _locate(current, instance_id)
            instance = current[index]
            if not instance.is_booked:
                raise InvalidStateError(f"Slot {instance.key} is not booked")
            booker_id = str(instance.booked_by)

            is_owner = actor_id == instance.instructor_id
            if not is_owner and actor_id != booker_id:
                raise ForbiddenError(f"{actor_id} cannot cancel the booking of {instance.key}")
            # the owner may cancel at any time, the booker only outside the notice window
            if not is_owner:
                lead_time = instance.starts_at(self._zone) - self._clock()
                if lead_time < self._notice:
                    raise TemporalViolationError(
                        f"Bookings can only be cancelled at least "
                        f"{self._settings.self_cancellation_notice_hours} hours in advance"
                    )

            freed = instance.without_booking()
            current[index] = freed
            return current, (freed, booker_id)

        try:
            freed, booker_id = self._slot_store.atomic_update(owner_id, mutate)
        except BookingError as exc:
            log_transition(logger, action="cancel", instance_key=instance_id.key, actor_id=actor_id, outcome=exc.kind)
            raise
        log_transition(logger, action="cancel", instance_key=freed.key, actor_id=actor_id)
        self._notifier.booking_cancelled(freed, booker_id=booker_id, cancelled_by=actor_id)
        return freed

    def list_bookings_for(self, actor_id: str) -> list[BookableInstance]:
        """Instances booked by the actor, across every owning instructor."""
        bookings: list[BookableInstance] = []
        for instructor_id in self._slot_store.list_instructors():
            if instructor_id == actor_id:
                continue
            bookings.extend(
                instance
                for instance in self._slot_store.get_instances(instructor_id)
                if instance.booked_by == actor_id
            )
        return sort_instances(bookings)
