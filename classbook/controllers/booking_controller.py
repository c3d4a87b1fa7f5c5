"""HTTP controller layer for slot listing, availability, booking and cancellation."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from classbook.controllers.dependencies import (
    get_actor_id,
    get_availability_service,
    get_booking_engine,
    raise_http_error,
)
from classbook.domain.errors import BookingError
from classbook.domain.models import BookableInstance, InstanceId
from classbook.services.availability_service import AvailabilityService
from classbook.services.booking_service import BookingEngine
from classbook.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["booking"])


class InstanceRef(BaseModel):
    """Structured slot identity; the composite key is derived, never parsed."""

    date: date
    hour: int = Field(ge=0, le=23)
    room: str = Field(min_length=1)
    instructor_id: str = Field(min_length=1)

    @field_validator("room", "instructor_id")
    @classmethod
    def strip_identifiers(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must be non-empty")
        return value

    def to_instance_id(self) -> InstanceId:
        return InstanceId(
            date=self.date,
            hour=self.hour,
            room=self.room,
            instructor_id=self.instructor_id,
        )


class SetAvailabilityRequest(BaseModel):
    instance: InstanceRef
    available: bool


class InstanceResponse(BaseModel):
    id: str
    date: date
    weekday: str
    hour: int = Field(ge=0, le=23)
    room: str
    duration_minutes: int = Field(gt=0)
    instructor_id: str
    state: str
    available: bool
    booked_by: Optional[str] = None
    booking_timestamp: Optional[datetime] = None

    @classmethod
    def from_instance(cls, instance: BookableInstance) -> "InstanceResponse":
        return cls(
            id=instance.key,
            date=instance.date,
            weekday=instance.weekday,
            hour=instance.hour,
            room=instance.room,
            duration_minutes=instance.duration_minutes,
            instructor_id=instance.instructor_id,
            state=instance.state.value,
            available=instance.available,
            booked_by=instance.booked_by,
            booking_timestamp=instance.booking_timestamp,
        )


class InstanceListResponse(BaseModel):
    instances: list[InstanceResponse]


def _list_response(instances: list[BookableInstance]) -> InstanceListResponse:
    return InstanceListResponse(
        instances=[InstanceResponse.from_instance(instance) for instance in instances]
    )


def _require_owner(actor_id: str, instructor_id: str) -> None:
    if actor_id != instructor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"kind": "forbidden", "message": "Only the owning instructor can manage these slots", "retryable": False},
        )


@router.get("/instructors/{instructor_id}/instances", response_model=InstanceListResponse)
def list_instances(
    instructor_id: str,
    target_date: date = Query(alias="date"),
    actor_id: str = Depends(get_actor_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> InstanceListResponse:
    """Instances the owner can manage on a date."""
    _require_owner(actor_id, instructor_id)
    try:
        return _list_response(service.list_instances(instructor_id, target_date))
    except BookingError as exc:
        raise_http_error(exc)


@router.put("/instructors/{instructor_id}/instances/availability", response_model=InstanceResponse)
def set_availability(
    instructor_id: str,
    payload: SetAvailabilityRequest,
    actor_id: str = Depends(get_actor_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> InstanceResponse:
    _require_owner(actor_id, instructor_id)
    try:
        updated = service.set_availability(
            instructor_id,
            payload.instance.to_instance_id(),
            payload.available,
        )
    except BookingError as exc:
        raise_http_error(exc)
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected availability update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update availability",
        ) from exc
    return InstanceResponse.from_instance(updated)


@router.get("/instructors/{instructor_id}/bookings", response_model=InstanceListResponse)
def list_instructor_bookings(
    instructor_id: str,
    actor_id: str = Depends(get_actor_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> InstanceListResponse:
    """Booked instances the instructor owns, including reassigned cells."""
    _require_owner(actor_id, instructor_id)
    try:
        return _list_response(service.list_booked_instances(instructor_id))
    except BookingError as exc:
        raise_http_error(exc)


@router.get("/bookable", response_model=InstanceListResponse)
def list_bookable(
    target_date: Optional[date] = Query(default=None, alias="date"),
    actor_id: str = Depends(get_actor_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> InstanceListResponse:
    try:
        return _list_response(service.list_bookable_instances(actor_id, target_date))
    except BookingError as exc:
        raise_http_error(exc)


@router.get("/bookings", response_model=InstanceListResponse)
def list_my_bookings(
    actor_id: str = Depends(get_actor_id),
    engine: BookingEngine = Depends(get_booking_engine),
) -> InstanceListResponse:
    try:
        return _list_response(engine.list_bookings_for(actor_id))
    except BookingError as exc:
        raise_http_error(exc)


@router.post("/bookings", response_model=InstanceResponse, status_code=status.HTTP_201_CREATED)
def book(
    payload: InstanceRef,
    actor_id: str = Depends(get_actor_id),
    engine: BookingEngine = Depends(get_booking_engine),
) -> InstanceResponse:
    """Book an open slot; on any failure the client should re-list."""
    try:
        booked = engine.book(actor_id, payload.to_instance_id())
    except BookingError as exc:
        raise_http_error(exc)
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected booking failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to book slot",
        ) from exc
    return InstanceResponse.from_instance(booked)


@router.post("/bookings/cancel", response_model=InstanceResponse)
def cancel(
    payload: InstanceRef,
    actor_id: str = Depends(get_actor_id),
    engine: BookingEngine = Depends(get_booking_engine),
) -> InstanceResponse:
    try:
        freed = engine.cancel(actor_id, payload.to_instance_id())
    except BookingError as exc:
        raise_http_error(exc)
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected cancellation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel booking",
        ) from exc
    return InstanceResponse.from_instance(freed)
