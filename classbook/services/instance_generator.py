"""Expansion of the weekly template into dated bookable instances."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from classbook.domain.models import (
    BookableInstance,
    InstanceId,
    ScheduleAssignment,
    weekday_label,
)


def expand(assignment: ScheduleAssignment, target_date: date) -> InstanceId:
    """Identity of the instance a template cell yields on a date.

    Pure: the same assignment and date always give the same identity.
    """
    return InstanceId(
        date=target_date,
        hour=assignment.cell.hour,
        room=assignment.cell.room,
        instructor_id=assignment.instructor_id,
    )


def generate_instances(
    *,
    assignments: Iterable[ScheduleAssignment],
    target_date: date,
    instructor_id: str,
    persisted: Sequence[BookableInstance],
    today: date,
    duration_minutes: int = 60,
) -> list[BookableInstance]:
    """Return the instances the instructor should see for ``target_date``.

    Persisted state wins over defaults. New instances start closed, and for
    dates before ``today`` only already-booked instances are emitted.
    """
    weekday = weekday_label(target_date)
    is_past = target_date < today
    persisted_by_key = {
        instance.key: instance
        for instance in persisted
        if instance.date == target_date
    }

    generated: list[BookableInstance] = []
    for assignment in assignments:
        if assignment.cell.weekday != weekday or assignment.instructor_id != instructor_id:
            continue
        identity = expand(assignment, target_date)
        existing = persisted_by_key.get(identity.key)

        if is_past and (existing is None or not existing.is_booked):
            continue

        if existing is not None:
            generated.append(existing)
        else:
            generated.append(
                BookableInstance(
                    instance_id=identity,
                    weekday=weekday,
                    duration_minutes=duration_minutes,
                    available=False,
                )
            )

    generated.sort(key=lambda instance: (instance.hour, instance.room))
    return generated
