"""Per-instructor persistence of bookable instances."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from threading import Lock
from typing import Callable, Iterable, Iterator, Sequence, TypeVar

from classbook.domain.constraints import validate_instance_invariants
from classbook.domain.errors import MalformedInputError, StoreUnavailableError
from classbook.domain.models import BookableInstance
from classbook.repository.document_store import DocumentStore
from classbook.utils.logger import get_logger


logger = get_logger(__name__)

AVAILABILITY_PREFIX = "availability:"

R = TypeVar("R")
Mutation = Callable[[list[BookableInstance]], tuple[list[BookableInstance], R]]


def availability_document(instructor_id: str) -> str:
    return f"{AVAILABILITY_PREFIX}{instructor_id}"


def sort_instances(instances: Iterable[BookableInstance]) -> list[BookableInstance]:
    """Ascending (date, hour, room) order used by every write and listing."""
    return sorted(instances, key=lambda instance: (instance.date, instance.hour, instance.room))


def splice_day(
    existing: Sequence[BookableInstance],
    target_date: date,
    replacements: Sequence[BookableInstance],
) -> list[BookableInstance]:
    """Replace the target date's instances by identity, keeping everything else.

    Instances of other dates are left untouched, and same-date instances that
    are not in ``replacements`` (for example a booked slot whose template cell
    was reassigned) are kept as they are.
    """
    for instance in replacements:
        if instance.date != target_date:
            raise MalformedInputError(
                f"instance {instance.key} does not belong to {target_date.isoformat()}"
            )
    replaced_keys = {instance.key for instance in replacements}
    kept = [instance for instance in existing if instance.key not in replaced_keys]
    return sort_instances([*kept, *replacements])


class OwnerLockRegistry:
    """Process-wide mutexes keyed by owning instructor."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, Lock] = {}

    def _lock_for(self, instructor_id: str) -> Lock:
        with self._guard:
            lock = self._locks.get(instructor_id)
            if lock is None:
                lock = Lock()
                self._locks[instructor_id] = lock
            return lock

    @contextmanager
    def hold(self, instructor_id: str, timeout: float) -> Iterator[None]:
        lock = self._lock_for(instructor_id)
        if not lock.acquire(timeout=timeout):
            raise StoreUnavailableError(
                f"Timed out waiting for the slot list of {instructor_id!r}"
            )
        try:
            yield
        finally:
            lock.release()


class SlotStore:
    """Owns BookableInstance records, one document per owning instructor.

    Every state transition goes through ``atomic_update`` which holds the
    owner's lock while it re-reads the list, applies the mutation and writes
    the result back with a version check.
    """

    def __init__(
        self,
        store: DocumentStore,
        lock_timeout_seconds: float = 5.0,
        locks: OwnerLockRegistry | None = None,
    ) -> None:
        self._store = store
        self._lock_timeout = lock_timeout_seconds
        self._locks = locks or OwnerLockRegistry()

    def _parse(self, instructor_id: str, raw: object) -> list[BookableInstance]:
        if not isinstance(raw, list):
            logger.warning("Availability for %s is not a list; treating as empty", instructor_id)
            return []
        instances: list[BookableInstance] = []
        for entry in raw:
            try:
                instance = BookableInstance.from_document(entry)
                validate_instance_invariants(instance)
            except MalformedInputError as exc:
                logger.warning("Dropping stored instance for %s: %s", instructor_id, exc)
                continue
            if instance.instructor_id != instructor_id:
                logger.warning(
                    "Dropping instance %s stored under %s", instance.key, instructor_id
                )
                continue
            instances.append(instance)
        return sort_instances(instances)

    def _read(self, instructor_id: str) -> tuple[list[BookableInstance], int]:
        raw, version = self._store.read_versioned(availability_document(instructor_id), [])
        return self._parse(instructor_id, raw), version

    def _write(
        self,
        instructor_id: str,
        instances: Sequence[BookableInstance],
        expected_version: int | None,
    ) -> None:
        for instance in instances:
            if instance.instructor_id != instructor_id:
                raise MalformedInputError(
                    f"instance {instance.key} does not belong to {instructor_id!r}"
                )
            validate_instance_invariants(instance)
        self._store.write(
            availability_document(instructor_id),
            [instance.to_document() for instance in sort_instances(instances)],
            expected_version=expected_version,
        )

    def get_instances(self, instructor_id: str) -> list[BookableInstance]:
        instances, _ = self._read(instructor_id)
        return instances

    def replace_instances(self, instructor_id: str, instances: Sequence[BookableInstance]) -> None:
        """Overwrite the owner's whole list under the owner lock."""
        with self._locks.hold(instructor_id, self._lock_timeout):
            _, version = self._read(instructor_id)
            self._write(instructor_id, instances, expected_version=version)

    def atomic_update(self, instructor_id: str, mutate: Mutation[R]) -> R:
        """Run read -> mutate -> write as one critical section for the owner.

        ``mutate`` receives the freshly read list and returns the list to
        store plus a result for the caller. If it raises, nothing is written.
        """
        with self._locks.hold(instructor_id, self._lock_timeout):
            current, version = self._read(instructor_id)
            updated, result = mutate(list(current))
            self._write(instructor_id, updated, expected_version=version)
            return result

    def list_instructors(self) -> list[str]:
        """Owning instructors that have at least one stored document."""
        return [
            name[len(AVAILABILITY_PREFIX):]
            for name in self._store.list_names(AVAILABILITY_PREFIX)
        ]
