"""Incident lifecycle and its coupling to room availability."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from housekeeping.domain.constraints import (
    require_role,
    require_self_or_manager,
    validate_incident_report,
)
from housekeeping.domain.errors import NotFoundError, ValidationError
from housekeeping.domain.models import (
    Identity,
    Incident,
    IncidentStatus,
    PhotoUpload,
    UserRole,
)
from housekeeping.domain.state_machine import apply_incident_reported, apply_incident_resolved
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.photo_service import LocalPhotoStorage, PhotoStorage
from housekeeping.utils.clock import Clock, ensure_utc, utc_now
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class IncidentService:
    """Implements ReportIncident and ResolveIncident."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        photo_storage: Optional[PhotoStorage] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._photo_storage = photo_storage or LocalPhotoStorage(self._settings)
        self._clock = clock or utc_now

    def report_incident(
        self,
        actor: Identity,
        room_id: str,
        description: str,
        photos: Sequence[PhotoUpload] = (),
        user_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Incident:
        """Open an incident and take the room out of service.

        ``user_id`` and ``created_at`` default to the acting user and the
        current time; offline replays pass the values captured on the device.
        """
        validate_incident_report(
            room_id,
            description,
            photos,
            self._settings.max_incident_photos,
        )
        reporter_id = user_id or actor.user_id
        require_self_or_manager(actor, reporter_id)
        if self._repository.get_room(room_id) is None:
            raise NotFoundError(f"Room {room_id} not found")

        photo_urls = [
            self._photo_storage.store(photo.content, photo.extension)
            for photo in photos
        ]
        incident = self._repository.create_incident(
            room_id=room_id,
            user_id=reporter_id,
            description=description.strip(),
            created_at=ensure_utc(created_at) if created_at else self._clock(),
            photo_urls=photo_urls,
            transition=apply_incident_reported,
        )
        logger.info(
            "Incident %s reported on room %s with %s photos",
            incident.incident_id,
            room_id,
            len(photo_urls),
        )
        return incident

    def resolve_incident(
        self,
        actor: Identity,
        incident_id: str,
        room_id: Optional[str] = None,
    ) -> Incident:
        """Resolve an OPEN incident; only reception may do this.

        Resolution moves the room to CLEAN. Unless
        ``incident_resolution_requires_all_closed`` is enabled this happens
        even when other incidents on the same room are still OPEN.
        """
        require_role(actor, UserRole.RECEPTION)
        if not incident_id:
            raise ValidationError("incident id is required")
        target_room_id = room_id
        if target_room_id is None:
            existing = self._repository.get_incident(incident_id)
            if existing is None:
                raise NotFoundError(f"Incident {incident_id} not found")
            target_room_id = existing.room_id

        require_all_closed = self._settings.incident_resolution_requires_all_closed
        incident, _ = self._repository.resolve_incident(
            incident_id=incident_id,
            room_id=target_room_id,
            resolved_by=actor.user_id,
            resolved_at=self._clock(),
            transition=lambda current, remaining: apply_incident_resolved(
                current,
                remaining,
                require_all_closed=require_all_closed,
            ),
        )
        return incident

    def get_incident(self, actor: Identity, incident_id: str) -> Incident:
        incident = self._repository.get_incident(incident_id)
        if incident is None:
            raise NotFoundError(f"Incident {incident_id} not found")
        if actor.role == UserRole.HOUSEKEEPER and incident.user_id != actor.user_id:
            raise NotFoundError(f"Incident {incident_id} not found")
        return incident

    def list_incidents(
        self,
        actor: Identity,
        room_id: Optional[str] = None,
        status: Optional[IncidentStatus] = None,
    ) -> list[Incident]:
        user_id = actor.user_id if actor.role == UserRole.HOUSEKEEPER else None
        return self._repository.list_incidents(room_id=room_id, status=status, user_id=user_id)
