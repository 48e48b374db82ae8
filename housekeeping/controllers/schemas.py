"""Response DTOs shared by the controller modules."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from housekeeping.domain.models import (
    Assignment,
    Cleaning,
    Incident,
    IncidentStatus,
    Room,
    RoomStatus,
    RoomView,
    SyncReport,
)


class RoomResponse(BaseModel):
    room_id: str
    number: str
    floor: Optional[int] = None
    status: RoomStatus
    is_occupied: bool
    last_cleaned_by: Optional[str] = None

    @classmethod
    def from_domain(cls, room: Room) -> "RoomResponse":
        return cls(
            room_id=room.room_id,
            number=room.number,
            floor=room.floor,
            status=room.status,
            is_occupied=room.is_occupied,
            last_cleaned_by=room.last_cleaned_by,
        )


class AssignmentResponse(BaseModel):
    assignment_id: str
    room_id: str
    user_id: str
    date: str
    assigned_at: datetime
    completed: bool

    @classmethod
    def from_domain(cls, assignment: Assignment) -> "AssignmentResponse":
        return cls(
            assignment_id=assignment.assignment_id,
            room_id=assignment.room_id,
            user_id=assignment.user_id,
            date=assignment.date,
            assigned_at=assignment.assigned_at,
            completed=assignment.completed,
        )


class CleaningResponse(BaseModel):
    cleaning_id: str
    room_id: str
    user_id: str
    date: str
    cleaned_at: datetime

    @classmethod
    def from_domain(cls, cleaning: Cleaning) -> "CleaningResponse":
        return cls(
            cleaning_id=cleaning.cleaning_id,
            room_id=cleaning.room_id,
            user_id=cleaning.user_id,
            date=cleaning.date,
            cleaned_at=cleaning.cleaned_at,
        )


class IncidentResponse(BaseModel):
    incident_id: str
    room_id: str
    user_id: str
    description: str
    status: IncidentStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    photo_urls: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, incident: Incident) -> "IncidentResponse":
        return cls(
            incident_id=incident.incident_id,
            room_id=incident.room_id,
            user_id=incident.user_id,
            description=incident.description,
            status=incident.status,
            created_at=incident.created_at,
            resolved_at=incident.resolved_at,
            resolved_by=incident.resolved_by,
            photo_urls=[photo.url for photo in incident.photos],
        )


class RoomViewResponse(BaseModel):
    room: RoomResponse
    assignments: list[AssignmentResponse]
    latest_cleaning: Optional[CleaningResponse] = None
    open_incident: Optional[IncidentResponse] = None
    is_pending: bool

    @classmethod
    def from_domain(cls, view: RoomView) -> "RoomViewResponse":
        return cls(
            room=RoomResponse.from_domain(view.room),
            assignments=[AssignmentResponse.from_domain(item) for item in view.assignments],
            latest_cleaning=(
                None
                if view.latest_cleaning is None
                else CleaningResponse.from_domain(view.latest_cleaning)
            ),
            open_incident=(
                None
                if view.open_incident is None
                else IncidentResponse.from_domain(view.open_incident)
            ),
            is_pending=view.is_pending,
        )


class SyncCountsResponse(BaseModel):
    synced: int = Field(ge=0)
    failed: int = Field(ge=0)


class SyncResponse(BaseModel):
    cleanings: SyncCountsResponse
    incidents: SyncCountsResponse

    @classmethod
    def from_domain(cls, report: SyncReport) -> "SyncResponse":
        return cls(
            cleanings=SyncCountsResponse(
                synced=report.cleanings.synced,
                failed=report.cleanings.failed,
            ),
            incidents=SyncCountsResponse(
                synced=report.incidents.synced,
                failed=report.incidents.failed,
            ),
        )
