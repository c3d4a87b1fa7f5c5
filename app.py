"""
app.py — FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the store, repositories and services, registers routers, and
initializes the document store at startup.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from classbook.controllers.booking_controller import router as booking_router
from classbook.controllers.schedule_controller import router as schedule_router
from classbook.repository.assignment_repository import AssignmentRepository
from classbook.repository.document_store import DocumentStore
from classbook.repository.slot_store import SlotStore
from classbook.repository.template_registry import TemplateRegistry
from classbook.services.auth_service import AuthService
from classbook.services.availability_service import AvailabilityService
from classbook.services.booking_service import BookingEngine
from classbook.services.eligibility_service import EligibilityResolver
from classbook.services.notification_service import (
    BookingNotifier,
    NotificationDispatcher,
    build_dispatcher,
)
from classbook.services.schedule_service import ScheduleService
from classbook.utils.clock import Clock, institution_zone
from classbook.utils.config import Settings, get_settings
from classbook.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    clock: Optional[Clock] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every dependency is created here and exposed through app.state, so tests
    can pass their own settings, clock and notification dispatcher.
    """
    settings = settings or get_settings()

    # --- Storage ---
    store = DocumentStore(settings)
    registry = TemplateRegistry(store)
    assignments = AssignmentRepository(store)
    slot_store = SlotStore(store, lock_timeout_seconds=settings.store_timeout_seconds)

    # --- Services ---
    eligibility = EligibilityResolver(assignments)
    notifier = BookingNotifier(
        dispatcher or build_dispatcher(settings),
        institution_zone(settings),
        app_url=settings.public_app_url,
    )
    availability_service = AvailabilityService(
        registry=registry,
        slot_store=slot_store,
        eligibility=eligibility,
        settings=settings,
        clock=clock,
    )
    booking_engine = BookingEngine(
        slot_store=slot_store,
        registry=registry,
        eligibility=eligibility,
        notifier=notifier,
        settings=settings,
        clock=clock,
    )
    schedule_service = ScheduleService(
        registry=registry,
        assignments=assignments,
        slot_store=slot_store,
        settings=settings,
        clock=clock,
    )
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.include_router(booking_router)
    app.include_router(schedule_router)

    app.state.document_store = store
    app.state.slot_store = slot_store
    app.state.availability_service = availability_service
    app.state.booking_engine = booking_engine
    app.state.schedule_service = schedule_service
    app.state.auth_service = auth_service

    return app


def startup(app: FastAPI) -> None:
    """Create the documents table once per process."""
    store: DocumentStore = app.state.document_store
    store.initialize_database()
    logger.info("System startup completed")


app = create_app()
