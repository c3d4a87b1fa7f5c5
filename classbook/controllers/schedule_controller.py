"""Controller layer for admin login, the weekly template and assignments."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from classbook.controllers.dependencies import (
    get_auth_service,
    get_schedule_service,
    raise_http_error,
    require_admin,
)
from classbook.domain.errors import BookingError
from classbook.domain.models import WEEKDAYS, ScheduleAssignment
from classbook.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from classbook.services.schedule_service import ScheduleService
from classbook.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["schedule"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ScheduleCellRequest(BaseModel):
    weekday: str
    hour: int = Field(ge=0, le=23)
    room: str = Field(min_length=1)
    instructor_id: Optional[str] = None

    @field_validator("weekday")
    @classmethod
    def validate_weekday(cls, value: str) -> str:
        normalized = value.strip().capitalize()
        if normalized not in WEEKDAYS:
            raise ValueError(f"weekday must be one of {', '.join(WEEKDAYS)}")
        return normalized


class ScheduleCellResponse(BaseModel):
    key: str
    weekday: str
    hour: int
    room: str
    instructor_id: Optional[str] = None

    @classmethod
    def from_assignment(cls, assignment: ScheduleAssignment) -> "ScheduleCellResponse":
        return cls(
            key=assignment.cell.key,
            weekday=assignment.cell.weekday,
            hour=assignment.cell.hour,
            room=assignment.cell.room,
            instructor_id=assignment.instructor_id or None,
        )


class ScheduleResponse(BaseModel):
    cells: list[ScheduleCellResponse]


class AssignedInstructorsRequest(BaseModel):
    instructor_ids: list[str]

    @field_validator("instructor_ids")
    @classmethod
    def validate_instructor_ids(cls, value: list[str]) -> list[str]:
        for instructor_id in value:
            if not instructor_id.strip():
                raise ValueError("instructor_ids values must be non-empty")
        return value


class AssignedInstructorsResponse(BaseModel):
    actor_id: str
    instructor_ids: list[str]


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        token = auth_service.login(payload.admin_token)
    except AdminTokenNotConfiguredError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except InvalidAdminTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    return LoginResponse(access_token=token)


@router.get(
    "/schedule",
    response_model=ScheduleResponse,
    dependencies=[Depends(require_admin)],
)
def get_schedule(
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleResponse:
    """Full configured grid, unassigned cells included."""
    try:
        cells = service.grid()
    except BookingError as exc:
        raise_http_error(exc)
    return ScheduleResponse(cells=[ScheduleCellResponse.from_assignment(cell) for cell in cells])


@router.put(
    "/schedule/cells",
    response_model=ScheduleCellResponse,
    dependencies=[Depends(require_admin)],
)
def assign_cell(
    payload: ScheduleCellRequest,
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleCellResponse:
    """Assign or clear one cell; existing bookings keep their owner."""
    try:
        assignment = service.assign(
            payload.weekday,
            payload.hour,
            payload.room.strip(),
            payload.instructor_id,
        )
    except BookingError as exc:
        raise_http_error(exc)
    return ScheduleCellResponse.from_assignment(assignment)


@router.get(
    "/users/{actor_id}/instructors",
    response_model=AssignedInstructorsResponse,
    dependencies=[Depends(require_admin)],
)
def get_assigned_instructors(
    actor_id: str,
    service: ScheduleService = Depends(get_schedule_service),
) -> AssignedInstructorsResponse:
    try:
        instructor_ids = service.assigned_instructors(actor_id)
    except BookingError as exc:
        raise_http_error(exc)
    return AssignedInstructorsResponse(actor_id=actor_id, instructor_ids=list(instructor_ids))


@router.put(
    "/users/{actor_id}/instructors",
    response_model=AssignedInstructorsResponse,
    dependencies=[Depends(require_admin)],
)
def set_assigned_instructors(
    actor_id: str,
    payload: AssignedInstructorsRequest,
    service: ScheduleService = Depends(get_schedule_service),
) -> AssignedInstructorsResponse:
    try:
        instructor_ids = service.set_assigned_instructors(actor_id, payload.instructor_ids)
    except BookingError as exc:
        raise_http_error(exc)
    logger.info("Assignments updated for %s", actor_id)
    return AssignedInstructorsResponse(actor_id=actor_id, instructor_ids=list(instructor_ids))
