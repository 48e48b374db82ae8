"""Controller layer for cleaning completion and incident tracking."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from housekeeping.controllers.dependencies import (
    get_cleaning_service,
    get_current_identity,
    get_incident_service,
    to_http_exception,
)
from housekeeping.controllers.schemas import CleaningResponse, IncidentResponse
from housekeeping.domain.errors import HousekeepingError
from housekeeping.domain.models import Identity, IncidentStatus
from housekeeping.services.cleaning_service import CleaningService
from housekeeping.services.incident_service import IncidentService
from housekeeping.services.photo_service import parse_photo_upload
from housekeeping.utils.clock import utc_now
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["activity"])


class RecordCleaningRequest(BaseModel):
    room_id: str = Field(min_length=1)
    date: Optional[str] = None
    user_id: Optional[str] = None


class ReportIncidentRequest(BaseModel):
    """Photos travel as data URLs or raw base64 strings."""

    room_id: str = Field(min_length=1)
    description: str
    photos: list[str] = Field(default_factory=list)


class ResolveIncidentRequest(BaseModel):
    room_id: Optional[str] = None


@router.get("/cleanings", response_model=list[CleaningResponse])
async def list_cleanings(
    date: Optional[str] = Query(default=None),
    room_id: Optional[str] = Query(default=None),
    user_id: Optional[str] = Query(default=None),
    identity: Identity = Depends(get_current_identity),
    service: CleaningService = Depends(get_cleaning_service),
) -> list[CleaningResponse]:
    try:
        cleanings = service.list_cleanings(
            identity,
            date or utc_now().date().isoformat(),
            room_id=room_id,
            user_id=user_id,
        )
        return [CleaningResponse.from_domain(item) for item in cleanings]
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected cleaning listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list cleanings",
        ) from exc


@router.get("/cleanings/history", response_model=list[CleaningResponse])
async def cleaning_history(
    start_date: str = Query(...),
    end_date: str = Query(...),
    user_id: Optional[str] = Query(default=None),
    identity: Identity = Depends(get_current_identity),
    service: CleaningService = Depends(get_cleaning_service),
) -> list[CleaningResponse]:
    try:
        cleanings = service.cleaning_history(identity, start_date, end_date, user_id=user_id)
        return [CleaningResponse.from_domain(item) for item in cleanings]
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected cleaning history failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load cleaning history",
        ) from exc


@router.post("/cleanings", response_model=CleaningResponse, status_code=status.HTTP_201_CREATED)
async def record_cleaning(
    payload: RecordCleaningRequest,
    identity: Identity = Depends(get_current_identity),
    service: CleaningService = Depends(get_cleaning_service),
) -> CleaningResponse:
    """Online cleaning completion stamped with the server clock."""
    try:
        cleaned_at = utc_now()
        cleaning = service.record_cleaning(
            identity,
            room_id=payload.room_id,
            user_id=payload.user_id or identity.user_id,
            service_date=payload.date or cleaned_at.date().isoformat(),
            cleaned_at=cleaned_at,
        )
        return CleaningResponse.from_domain(cleaning)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected cleaning failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record cleaning",
        ) from exc


@router.get("/incidents", response_model=list[IncidentResponse])
async def list_incidents(
    room_id: Optional[str] = Query(default=None),
    incident_status: Optional[IncidentStatus] = Query(default=None, alias="status"),
    identity: Identity = Depends(get_current_identity),
    service: IncidentService = Depends(get_incident_service),
) -> list[IncidentResponse]:
    try:
        incidents = service.list_incidents(identity, room_id=room_id, status=incident_status)
        return [IncidentResponse.from_domain(item) for item in incidents]
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected incident listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list incidents",
        ) from exc


@router.get("/incidents/{incident_id}", response_model=IncidentResponse)
async def get_incident(
    incident_id: str,
    identity: Identity = Depends(get_current_identity),
    service: IncidentService = Depends(get_incident_service),
) -> IncidentResponse:
    try:
        return IncidentResponse.from_domain(service.get_incident(identity, incident_id))
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected incident lookup failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load incident",
        ) from exc


@router.post("/incidents", response_model=IncidentResponse, status_code=status.HTTP_201_CREATED)
async def report_incident(
    payload: ReportIncidentRequest,
    identity: Identity = Depends(get_current_identity),
    service: IncidentService = Depends(get_incident_service),
) -> IncidentResponse:
    """Open an incident; the room is disabled until reception resolves it."""
    try:
        uploads = [parse_photo_upload(photo) for photo in payload.photos]
        incident = service.report_incident(
            identity,
            room_id=payload.room_id,
            description=payload.description,
            photos=uploads,
        )
        return IncidentResponse.from_domain(incident)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected incident report failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to report incident",
        ) from exc


@router.post("/incidents/{incident_id}/resolve", response_model=IncidentResponse)
async def resolve_incident(
    incident_id: str,
    payload: Optional[ResolveIncidentRequest] = None,
    identity: Identity = Depends(get_current_identity),
    service: IncidentService = Depends(get_incident_service),
) -> IncidentResponse:
    try:
        incident = service.resolve_incident(
            identity,
            incident_id,
            room_id=None if payload is None else payload.room_id,
        )
        return IncidentResponse.from_domain(incident)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected incident resolution failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to resolve incident",
        ) from exc
