"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import NoReturn

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from classbook.domain.errors import (
    BookingError,
    ForbiddenError,
    InvalidStateError,
    MalformedInputError,
    NotFoundError,
    StoreUnavailableError,
    TemporalViolationError,
)
from classbook.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from classbook.services.availability_service import AvailabilityService
from classbook.services.booking_service import BookingEngine
from classbook.services.schedule_service import ScheduleService
from classbook.utils.config import get_settings


bearer_scheme = HTTPBearer(auto_error=False)

_STATUS_BY_ERROR: tuple[tuple[type[BookingError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (TemporalViolationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (MalformedInputError, status.HTTP_400_BAD_REQUEST),
)


def raise_http_error(exc: BookingError) -> NoReturn:
    """Translate a typed booking failure into an HTTPException."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    headers = {"Retry-After": "1"} if exc.retryable else None
    raise HTTPException(
        status_code=status_code,
        detail={"kind": exc.kind, "message": str(exc), "retryable": exc.retryable},
        headers=headers,
    ) from exc


def _service_from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not initialized",
        )
    return service


def get_availability_service(request: Request) -> AvailabilityService:
    return _service_from_state(request, "availability_service", "Availability service")


def get_booking_engine(request: Request) -> BookingEngine:
    return _service_from_state(request, "booking_engine", "Booking engine")


def get_schedule_service(request: Request) -> ScheduleService:
    return _service_from_state(request, "schedule_service", "Schedule service")


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_settings())
        request.app.state.auth_service = service
    return service


def get_actor_id(x_actor_id: str = Header(..., min_length=1)) -> str:
    """Actor identity is passed explicitly on every booking call."""
    actor_id = x_actor_id.strip()
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Actor-Id header must be non-empty",
        )
    return actor_id


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    if not auth_service.auth_enabled:
        return
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    try:
        auth_service.validate_bearer_token(credentials.credentials)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
