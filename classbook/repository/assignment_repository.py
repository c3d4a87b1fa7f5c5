"""Actor -> assigned instructors relation, kept in the users document."""

from __future__ import annotations

from typing import Iterable

from classbook.repository.document_store import DocumentStore
from classbook.utils.logger import get_logger


logger = get_logger(__name__)

USERS_DOCUMENT = "users"


class AssignmentRepository:
    """Read access for booking checks, write access for the admin workflow."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def _users(self) -> dict:
        raw = self._store.read(USERS_DOCUMENT, {})
        if not isinstance(raw, dict):
            logger.warning("Users document is not an object; treating as empty")
            return {}
        return raw

    def assigned_instructors(self, actor_id: str) -> tuple[str, ...]:
        entry = self._users().get(actor_id)
        if not isinstance(entry, dict):
            return ()
        instructors = entry.get("assigned_instructors")
        if not isinstance(instructors, list):
            return ()
        return tuple(str(item) for item in instructors if isinstance(item, str) and item)

    def set_assigned_instructors(self, actor_id: str, instructor_ids: Iterable[str]) -> tuple[str, ...]:
        normalized = tuple(sorted({item.strip() for item in instructor_ids if item.strip()}))
        users = self._users()
        entry = users.get(actor_id)
        if not isinstance(entry, dict):
            entry = {}
        entry["assigned_instructors"] = list(normalized)
        users[actor_id] = entry
        self._store.write(USERS_DOCUMENT, users)
        logger.info("Actor %s may now book from %s", actor_id, list(normalized))
        return normalized
