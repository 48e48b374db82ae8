"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from housekeeping.controllers.activity_controller import router as activity_router
from housekeeping.controllers.auth_controller import router as auth_router
from housekeeping.controllers.room_controller import router as room_router
from housekeeping.controllers.sync_controller import router as sync_router
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.assignment_service import AssignmentService
from housekeeping.services.auth_service import AuthService
from housekeeping.services.cleaning_service import CleaningService
from housekeeping.services.incident_service import IncidentService
from housekeeping.services.notification_service import build_notification_sender
from housekeeping.services.photo_service import LocalPhotoStorage
from housekeeping.services.room_service import RoomService
from housekeeping.services.sync_service import SyncService
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Instantiates all services with explicit dependency injection via app.state.
    Every dependency is traceable from this function.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    # --- Repository (sqlite connection factory) ---
    repository = DataRepository(settings)

    # --- External collaborators ---
    photo_storage = LocalPhotoStorage(settings)
    notifier = build_notification_sender(settings)

    # --- Services ---
    auth_service = AuthService(repository=repository, settings=settings)
    room_service = RoomService(repository=repository, settings=settings)
    assignment_service = AssignmentService(
        repository=repository,
        notifier=notifier,
        settings=settings,
    )
    cleaning_service = CleaningService(repository=repository, settings=settings)
    incident_service = IncidentService(
        repository=repository,
        photo_storage=photo_storage,
        settings=settings,
    )
    sync_service = SyncService(
        cleaning_service=cleaning_service,
        incident_service=incident_service,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(auth_router)
    app.include_router(room_router)
    app.include_router(activity_router)
    app.include_router(sync_router)

    # --- Inject services into app.state for dependency resolution ---
    app.state.repository = repository
    app.state.auth_service = auth_service
    app.state.room_service = room_service
    app.state.assignment_service = assignment_service
    app.state.cleaning_service = cleaning_service
    app.state.incident_service = incident_service
    app.state.sync_service = sync_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before seeding; seeding is skipped once users exist.
    """
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo staff and rooms (skipped if Users table not empty)")
        repository.seed_demo_data()

    if not settings.access_token:
        logger.warning("HOUSEKEEPING_ACCESS_TOKEN is not set; logins will be rejected")

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
