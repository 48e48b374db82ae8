"""HTTP controller layer for rooms and the assignment ledger."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from housekeeping.controllers.dependencies import (
    get_assignment_service,
    get_current_identity,
    get_room_service,
    to_http_exception,
)
from housekeeping.controllers.schemas import (
    AssignmentResponse,
    RoomResponse,
    RoomViewResponse,
)
from housekeeping.domain.errors import HousekeepingError
from housekeeping.domain.models import Identity, RoomStatus
from housekeeping.services.assignment_service import AssignmentService
from housekeeping.services.room_service import RoomService
from housekeeping.utils.clock import utc_now
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["rooms"])


def _today() -> str:
    return utc_now().date().isoformat()


class CreateRoomRequest(BaseModel):
    number: str = Field(min_length=1)
    floor: Optional[int] = Field(default=None, ge=0)


class UpdateRoomRequest(BaseModel):
    """Reception edit; occupancy and status are mutually exclusive."""

    is_occupied: Optional[bool] = None
    status: Optional[RoomStatus] = None
    number: Optional[str] = None
    floor: Optional[int] = Field(default=None, ge=0)


class AssignRoomsRequest(BaseModel):
    room_ids: list[str]
    user_id: str = Field(min_length=1)
    date: Optional[str] = None

    @field_validator("room_ids")
    @classmethod
    def validate_room_ids(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("room_ids must contain at least one room id")
        for room_id in value:
            if not room_id.strip():
                raise ValueError("room_ids values must be non-empty")
        return value


class ReassignRequest(BaseModel):
    room_id: str = Field(min_length=1)
    date: Optional[str] = None
    user_id: Optional[str] = None


@router.get("/rooms", response_model=list[RoomViewResponse])
async def list_rooms(
    date: Optional[str] = Query(default=None),
    user_id: Optional[str] = Query(default=None),
    view_all: bool = Query(default=False),
    identity: Identity = Depends(get_current_identity),
    service: RoomService = Depends(get_room_service),
) -> list[RoomViewResponse]:
    """Rooms with assignments, latest cleaning and open incident for a date."""
    try:
        views = service.get_rooms(
            identity,
            service_date=date or _today(),
            user_id=user_id,
            view_all=view_all,
        )
        return [RoomViewResponse.from_domain(view) for view in views]
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list rooms",
        ) from exc


@router.get("/rooms/pending", response_model=list[RoomViewResponse])
async def list_pending_rooms(
    date: Optional[str] = Query(default=None),
    view_all: bool = Query(default=False),
    identity: Identity = Depends(get_current_identity),
    service: RoomService = Depends(get_room_service),
) -> list[RoomViewResponse]:
    try:
        views = service.list_pending_rooms(
            identity,
            service_date=date or _today(),
            view_all=view_all,
        )
        return [RoomViewResponse.from_domain(view) for view in views]
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected pending room listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list pending rooms",
        ) from exc


@router.get("/rooms/{room_id}", response_model=RoomResponse)
async def get_room(
    room_id: str,
    identity: Identity = Depends(get_current_identity),
    service: RoomService = Depends(get_room_service),
) -> RoomResponse:
    try:
        return RoomResponse.from_domain(service.get_room(identity, room_id))
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room lookup failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load room",
        ) from exc


@router.post("/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    payload: CreateRoomRequest,
    identity: Identity = Depends(get_current_identity),
    service: RoomService = Depends(get_room_service),
) -> RoomResponse:
    try:
        room = service.create_room(identity, payload.number, payload.floor)
        return RoomResponse.from_domain(room)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create room",
        ) from exc


@router.patch("/rooms/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: str,
    payload: UpdateRoomRequest,
    identity: Identity = Depends(get_current_identity),
    service: RoomService = Depends(get_room_service),
) -> RoomResponse:
    """Occupancy toggle, direct status edit, or number/floor edit."""
    try:
        room = service.update_room(
            identity,
            room_id,
            is_occupied=payload.is_occupied,
            status=payload.status,
            number=payload.number,
            floor=payload.floor,
        )
        return RoomResponse.from_domain(room)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update room",
        ) from exc


@router.get("/assignments", response_model=list[AssignmentResponse])
async def list_assignments(
    date: Optional[str] = Query(default=None),
    user_id: Optional[str] = Query(default=None),
    identity: Identity = Depends(get_current_identity),
    service: AssignmentService = Depends(get_assignment_service),
) -> list[AssignmentResponse]:
    try:
        assignments = service.list_assignments(identity, date or _today(), user_id=user_id)
        return [AssignmentResponse.from_domain(item) for item in assignments]
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list assignments",
        ) from exc


@router.post(
    "/assignments",
    response_model=list[AssignmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def assign_rooms(
    payload: AssignRoomsRequest,
    identity: Identity = Depends(get_current_identity),
    service: AssignmentService = Depends(get_assignment_service),
) -> list[AssignmentResponse]:
    """Bulk assignment; all rooms are assigned or none are."""
    try:
        assignments = service.assign_rooms(
            identity,
            room_ids=payload.room_ids,
            user_id=payload.user_id,
            service_date=payload.date or _today(),
        )
        return [AssignmentResponse.from_domain(item) for item in assignments]
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to assign rooms",
        ) from exc


@router.post(
    "/assignments/reassign",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reassign_to_last_cleaner(
    payload: ReassignRequest,
    identity: Identity = Depends(get_current_identity),
    service: AssignmentService = Depends(get_assignment_service),
) -> AssignmentResponse:
    try:
        assignment = service.reassign_to_last_cleaner(
            identity,
            room_id=payload.room_id,
            service_date=payload.date or _today(),
            user_id=payload.user_id,
        )
        return AssignmentResponse.from_domain(assignment)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected reassignment failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reassign room",
        ) from exc


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_assignment(
    assignment_id: str,
    identity: Identity = Depends(get_current_identity),
    service: AssignmentService = Depends(get_assignment_service),
) -> None:
    try:
        service.remove_assignment(identity, assignment_id)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment removal failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to remove assignment",
        ) from exc
