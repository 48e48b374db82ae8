"""Server-side reconciliation of offline outbox entries (SyncBatch)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from housekeeping.domain.constraints import validate_room_id, validate_service_date
from housekeeping.domain.errors import HousekeepingError, ValidationError
from housekeeping.domain.models import (
    Cleaning,
    Identity,
    Incident,
    PendingCleaning,
    PendingIncident,
    PhotoUpload,
    SyncReport,
)
from housekeeping.services.cleaning_service import CleaningService
from housekeeping.services.incident_service import IncidentService
from housekeeping.services.photo_service import decode_photo_payload, detect_image_extension
from housekeeping.utils.clock import ensure_utc, to_db_timestamp
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


def _field(payload: Mapping[str, Any], *names: str) -> Any:
    if not isinstance(payload, Mapping):
        raise ValidationError("entry must be a JSON object")
    for name in names:
        if name in payload and payload[name] is not None:
            return payload[name]
    return None


def _parse_timestamp(value: Any, name: str) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    try:
        return ensure_utc(datetime.fromisoformat(value.strip()))
    except ValueError as exc:
        raise ValidationError(f"{name} must be an ISO-8601 timestamp") from exc


def _parse_service_date(value: Any, fallback: datetime) -> str:
    if value is None or value == "":
        return fallback.date().isoformat()
    text = str(value)[:10]
    validate_service_date(text)
    return text


def parse_cleaning_entry(payload: Mapping[str, Any], default_user_id: str) -> PendingCleaning:
    """Build a PendingCleaning from a wire payload (snake_case or camelCase)."""
    room_id = _field(payload, "room_id", "roomId")
    validate_room_id(room_id)
    cleaned_at = _parse_timestamp(_field(payload, "cleaned_at", "cleanedAt"), "cleaned_at")
    return PendingCleaning(
        room_id=str(room_id),
        user_id=str(_field(payload, "user_id", "userId") or default_user_id),
        date=_parse_service_date(_field(payload, "date"), cleaned_at),
        cleaned_at=cleaned_at,
    )


def parse_incident_entry(payload: Mapping[str, Any], default_user_id: str) -> PendingIncident:
    room_id = _field(payload, "room_id", "roomId")
    validate_room_id(room_id)
    photos = _field(payload, "photos") or []
    if not isinstance(photos, (list, tuple)):
        raise ValidationError("photos must be a list")
    return PendingIncident(
        room_id=str(room_id),
        user_id=str(_field(payload, "user_id", "userId") or default_user_id),
        description=str(_field(payload, "description") or ""),
        photos=tuple(None if photo is None else str(photo) for photo in photos),
        created_at=_parse_timestamp(_field(payload, "created_at", "createdAt"), "created_at"),
    )


def serialize_cleaning_entry(entry: PendingCleaning) -> dict[str, Any]:
    return {
        "entry_id": entry.entry_id,
        "room_id": entry.room_id,
        "user_id": entry.user_id,
        "date": entry.date,
        "cleaned_at": to_db_timestamp(entry.cleaned_at),
    }


def serialize_incident_entry(entry: PendingIncident) -> dict[str, Any]:
    return {
        "entry_id": entry.entry_id,
        "room_id": entry.room_id,
        "user_id": entry.user_id,
        "description": entry.description,
        "photos": list(entry.photos),
        "created_at": to_db_timestamp(entry.created_at),
    }


class SyncService:
    """Replays outbox entries through the same operations online clients use."""

    def __init__(
        self,
        cleaning_service: CleaningService,
        incident_service: IncidentService,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._cleaning_service = cleaning_service
        self._incident_service = incident_service

    def apply_cleaning_entry(self, actor: Identity, entry: PendingCleaning) -> Cleaning:
        """Record a queued cleaning with its original offline timestamp."""
        return self._cleaning_service.record_cleaning(
            actor,
            room_id=entry.room_id,
            user_id=entry.user_id or actor.user_id,
            service_date=entry.date,
            cleaned_at=entry.cleaned_at,
        )

    def apply_incident_entry(self, actor: Identity, entry: PendingIncident) -> Incident:
        if len(entry.photos) > self._settings.max_incident_photos:
            raise ValidationError(f"Maximum {self._settings.max_incident_photos} photos allowed")
        uploads = self._decode_photos(entry)
        return self._incident_service.report_incident(
            actor,
            room_id=entry.room_id,
            description=entry.description,
            photos=uploads,
            user_id=entry.user_id or actor.user_id,
            created_at=entry.created_at,
        )

    def sync_batch(
        self,
        actor: Identity,
        cleanings: Sequence[Mapping[str, Any]],
        incidents: Sequence[Mapping[str, Any]],
    ) -> SyncReport:
        """Apply every entry independently and report aggregate counts.

        Cleanings run before incidents, each kind in the order received. One
        entry failing never stops its siblings.
        """
        report = SyncReport()
        for position, payload in enumerate(cleanings):
            try:
                entry = parse_cleaning_entry(payload, actor.user_id)
                self.apply_cleaning_entry(actor, entry)
                report.cleanings.synced += 1
            except HousekeepingError as exc:
                report.cleanings.failed += 1
                logger.warning("Failed to sync cleaning #%s: %s", position, exc)
            except Exception:
                report.cleanings.failed += 1
                logger.exception("Unexpected error syncing cleaning #%s", position)

        for position, payload in enumerate(incidents):
            try:
                entry = parse_incident_entry(payload, actor.user_id)
                self.apply_incident_entry(actor, entry)
                report.incidents.synced += 1
            except HousekeepingError as exc:
                report.incidents.failed += 1
                logger.warning("Failed to sync incident #%s: %s", position, exc)
            except Exception:
                report.incidents.failed += 1
                logger.exception("Unexpected error syncing incident #%s", position)

        logger.info("Sync batch from %s finished: %s", actor.user_id, report.as_dict())
        return report

    def _decode_photos(self, entry: PendingIncident) -> list[PhotoUpload]:
        """Decode embedded photos, skipping empty or non-image payloads."""
        uploads: list[PhotoUpload] = []
        for index, payload in enumerate(entry.photos):
            content = decode_photo_payload(payload)
            if not content:
                logger.warning("Skipping empty photo %s for room %s", index, entry.room_id)
                continue
            extension = detect_image_extension(content)
            if extension is None:
                logger.warning(
                    "Skipping photo %s for room %s: not a jpg, png or webp image",
                    index,
                    entry.room_id,
                )
                continue
            uploads.append(PhotoUpload(content=content, extension=extension))
        return uploads
