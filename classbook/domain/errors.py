"""Failure taxonomy shared by the scheduling and booking layers."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for every typed failure surfaced to callers."""

    kind = "booking_error"
    retryable = False


class NotFoundError(BookingError):
    """Raised when an instance, owner or template cell is absent."""

    kind = "not_found"


class InvalidStateError(BookingError):
    """Raised when a transition's state preconditions are not met."""

    kind = "invalid_state"


class SlotNoLongerAvailableError(InvalidStateError):
    """Raised when a slot stopped being open between listing and booking."""

    kind = "slot_no_longer_available"


class ForbiddenError(BookingError):
    """Raised when an eligibility or ownership check fails."""

    kind = "forbidden"


class TemporalViolationError(BookingError):
    """Raised for past-date mutations or cancellations inside the notice window."""

    kind = "temporal_violation"


class StoreUnavailableError(BookingError):
    """Raised when the document store failed, timed out or saw a concurrent write."""

    kind = "store_unavailable"
    retryable = True


class MalformedInputError(BookingError):
    """Raised when a template key, instance document or request field is invalid."""

    kind = "malformed_input"
