"""Weekly (weekday, hour, room) -> instructor template persisted as one document."""

from __future__ import annotations

from typing import Any, Optional

from classbook.domain.errors import MalformedInputError
from classbook.domain.models import WEEKDAYS, ScheduleAssignment, ScheduleCell, parse_hour
from classbook.repository.document_store import DocumentStore
from classbook.utils.logger import get_logger


logger = get_logger(__name__)

SCHEDULE_DOCUMENT = "classroom_schedule"


def parse_schedule_key(key: str) -> ScheduleCell:
    """Split '<Weekday>-<HH>:00-<Room>'; the room keeps any further hyphens."""
    parts = key.split("-")
    if len(parts) < 3:
        raise MalformedInputError(f"schedule key {key!r} has fewer than 3 parts")
    weekday, hour_text = parts[0], parts[1]
    room = "-".join(parts[2:])
    if weekday not in WEEKDAYS:
        raise MalformedInputError(f"schedule key {key!r} has unknown weekday")
    try:
        hour = parse_hour(hour_text)
    except ValueError as exc:
        raise MalformedInputError(f"schedule key {key!r}: {exc}") from exc
    if not room:
        raise MalformedInputError(f"schedule key {key!r} has an empty room")
    return ScheduleCell(weekday=weekday, hour=hour, room=room)


def _instructor_of(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("instructor_id", "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedInputError(f"assignment value {value!r} is not an instructor id")
    return value.strip()


class TemplateRegistry:
    """Reads and writes the standing weekly assignment grid."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_assignments(self, *, include_unassigned: bool = False) -> list[ScheduleAssignment]:
        """Return parsed assignments; malformed entries are skipped with a warning."""
        raw = self._store.read(SCHEDULE_DOCUMENT, {})
        if not isinstance(raw, dict):
            logger.warning("Schedule document is not an object; treating as empty")
            return []

        assignments: list[ScheduleAssignment] = []
        for key, value in raw.items():
            try:
                cell = parse_schedule_key(str(key))
                instructor_id = _instructor_of(value)
            except MalformedInputError as exc:
                logger.warning("Skipping schedule entry: %s", exc)
                continue
            if instructor_id or include_unassigned:
                assignments.append(ScheduleAssignment(cell=cell, instructor_id=instructor_id))
        assignments.sort(key=lambda item: (WEEKDAYS.index(item.cell.weekday), item.cell.hour, item.cell.room))
        return assignments

    def assignments_for(self, instructor_id: str, weekday: Optional[str] = None) -> list[ScheduleAssignment]:
        return [
            assignment
            for assignment in self.list_assignments()
            if assignment.instructor_id == instructor_id
            and (weekday is None or assignment.cell.weekday == weekday)
        ]

    def owner_of(self, cell: ScheduleCell) -> str:
        """Return the instructor currently assigned to a cell, or ''."""
        for assignment in self.list_assignments():
            if assignment.cell == cell:
                return assignment.instructor_id
        return ""

    def set_assignment(self, cell: ScheduleCell, instructor_id: Optional[str]) -> ScheduleAssignment:
        """Overwrite one cell; an empty instructor id clears it."""
        raw = self._store.read(SCHEDULE_DOCUMENT, {})
        if not isinstance(raw, dict):
            raw = {}
        normalized = (instructor_id or "").strip()
        raw[cell.key] = {"instructor_id": normalized}
        self._store.write(SCHEDULE_DOCUMENT, raw)
        logger.info("Schedule cell %s assigned to %r", cell.key, normalized or None)
        return ScheduleAssignment(cell=cell, instructor_id=normalized)
