"""Domain models for room lifecycle, assignments, incidents and the outbox."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    RECEPTION = "RECEPTION"
    HOUSEKEEPER = "HOUSEKEEPER"


class RoomStatus(str, Enum):
    VACANT = "VACANT"
    OCCUPIED = "OCCUPIED"
    CLEANING_PENDING = "CLEANING_PENDING"
    CHECKOUT_PENDING = "CHECKOUT_PENDING"
    CLEAN = "CLEAN"
    DISABLED = "DISABLED"


class IncidentStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


@dataclass(frozen=True)
class User:
    user_id: str
    name: str
    email: str
    role: UserRole


@dataclass(frozen=True)
class Identity:
    """Caller identity handed to every operation by the session provider."""

    user_id: str
    role: UserRole
    display_name: str = ""


@dataclass(frozen=True)
class Room:
    room_id: str
    number: str
    floor: Optional[int]
    status: RoomStatus
    is_occupied: bool
    last_cleaned_by: Optional[str] = None


@dataclass(frozen=True)
class Assignment:
    assignment_id: str
    room_id: str
    user_id: str
    date: str
    assigned_at: datetime
    completed: bool


@dataclass(frozen=True)
class Cleaning:
    cleaning_id: str
    room_id: str
    user_id: str
    date: str
    cleaned_at: datetime


@dataclass(frozen=True)
class IncidentPhoto:
    photo_id: str
    incident_id: str
    url: str


@dataclass(frozen=True)
class Incident:
    incident_id: str
    room_id: str
    user_id: str
    description: str
    status: IncidentStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    photos: tuple[IncidentPhoto, ...] = ()


@dataclass(frozen=True)
class PhotoUpload:
    content: bytes
    extension: str


@dataclass(frozen=True)
class RoomView:
    """Read model returned by room listings."""

    room: Room
    assignments: tuple[Assignment, ...]
    latest_cleaning: Optional[Cleaning]
    open_incident: Optional[Incident]
    is_pending: bool


@dataclass(frozen=True)
class PendingCleaning:
    room_id: str
    user_id: str
    date: str
    cleaned_at: datetime
    entry_id: Optional[int] = None
    synced: bool = False


@dataclass(frozen=True)
class PendingIncident:
    room_id: str
    user_id: str
    description: str
    photos: tuple[Optional[str], ...]
    created_at: datetime
    entry_id: Optional[int] = None
    synced: bool = False


@dataclass
class SyncCounts:
    synced: int = 0
    failed: int = 0


@dataclass
class SyncReport:
    cleanings: SyncCounts = field(default_factory=SyncCounts)
    incidents: SyncCounts = field(default_factory=SyncCounts)

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {
            "cleanings": {"synced": self.cleanings.synced, "failed": self.cleanings.failed},
            "incidents": {"synced": self.incidents.synced, "failed": self.incidents.failed},
        }
