"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from housekeeping.domain.errors import (
    ForbiddenError,
    HousekeepingError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from housekeeping.domain.models import Identity
from housekeeping.services.assignment_service import AssignmentService
from housekeeping.services.auth_service import AuthService
from housekeeping.services.cleaning_service import CleaningService
from housekeeping.services.incident_service import IncidentService
from housekeeping.services.room_service import RoomService
from housekeeping.services.sync_service import SyncService


bearer_scheme = HTTPBearer(auto_error=False)

_ERROR_STATUS = (
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(exc: HousekeepingError) -> HTTPException:
    """Map a domain failure onto the status code clients expect for it."""
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(exc),
    )


def _service_from_state(request: Request, name: str, label: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_auth_service(request: Request) -> AuthService:
    return _service_from_state(request, "auth_service", "Auth")


def get_room_service(request: Request) -> RoomService:
    return _service_from_state(request, "room_service", "Room")


def get_assignment_service(request: Request) -> AssignmentService:
    return _service_from_state(request, "assignment_service", "Assignment")


def get_cleaning_service(request: Request) -> CleaningService:
    return _service_from_state(request, "cleaning_service", "Cleaning")


def get_incident_service(request: Request) -> IncidentService:
    return _service_from_state(request, "incident_service", "Incident")


def get_sync_service(request: Request) -> SyncService:
    return _service_from_state(request, "sync_service", "Sync")


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Identity:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    try:
        return auth_service.resolve(credentials.credentials)
    except UnauthorizedError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
