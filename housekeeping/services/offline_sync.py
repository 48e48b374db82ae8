"""Client-side offline handling: outbox fallback and reconciliation on reconnect.

A housekeeping device applies actions through a ``SyncGateway`` while it is
online. When it is offline, or the server cannot be reached, the action is
appended to the ``OfflineOutbox`` instead. ``SyncReconciler`` later drains the
outbox one entry at a time, deleting each entry only after the server
accepted it.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Sequence

import httpx

from housekeeping.domain.constraints import (
    validate_incident_report,
    validate_room_id,
    validate_service_date,
)
from housekeeping.domain.errors import (
    ForbiddenError,
    GatewayUnavailableError,
    HousekeepingError,
    SyncRejectedError,
    UnauthorizedError,
)
from housekeeping.domain.models import Identity, PendingCleaning, PendingIncident, SyncReport
from housekeeping.repository.outbox_repository import OfflineOutbox
from housekeeping.services.photo_service import encode_photo_data_url
from housekeeping.services.sync_service import (
    SyncService,
    serialize_cleaning_entry,
    serialize_incident_entry,
)
from housekeeping.utils.clock import Clock, ensure_utc, utc_now
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class DeliveryOutcome(str, Enum):
    APPLIED = "APPLIED"
    QUEUED = "QUEUED"


class SyncGateway(Protocol):
    def push_cleaning(self, entry: PendingCleaning) -> None:
        ...

    def push_incident(self, entry: PendingIncident) -> None:
        ...


class LocalSyncGateway:
    """Applies entries in-process, for clients embedded next to the server."""

    def __init__(self, sync_service: SyncService, actor: Identity) -> None:
        self._sync_service = sync_service
        self._actor = actor

    def push_cleaning(self, entry: PendingCleaning) -> None:
        self._sync_service.apply_cleaning_entry(self._actor, entry)

    def push_incident(self, entry: PendingIncident) -> None:
        self._sync_service.apply_incident_entry(self._actor, entry)


class HttpSyncGateway:
    """Posts one entry per ``/sync`` request so each delivery is confirmed alone."""

    def __init__(
        self,
        bearer_token: str,
        settings: Optional[Settings] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client or httpx.Client(
            base_url=self._settings.sync_server_url,
            timeout=self._settings.sync_timeout_seconds,
        )
        self._headers = {"Authorization": f"Bearer {bearer_token}"}

    def push_cleaning(self, entry: PendingCleaning) -> None:
        self._post(
            {"cleanings": [serialize_cleaning_entry(entry)], "incidents": []},
            kind="cleanings",
        )

    def push_incident(self, entry: PendingIncident) -> None:
        self._post(
            {"cleanings": [], "incidents": [serialize_incident_entry(entry)]},
            kind="incidents",
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, body: dict[str, Any], kind: str) -> None:
        try:
            response = self._client.post("/sync", json=body, headers=self._headers)
        except httpx.TransportError as exc:
            raise GatewayUnavailableError(f"Sync server unreachable: {exc}") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise UnauthorizedError("Sync session is not valid")
        if response.status_code == httpx.codes.FORBIDDEN:
            raise ForbiddenError("Sync is not allowed for this session")
        if response.status_code >= 500:
            raise GatewayUnavailableError(f"Sync server error {response.status_code}")
        if response.is_error:
            raise SyncRejectedError(f"Sync request rejected with {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise SyncRejectedError(f"Sync response for {kind} is not JSON") from exc
        counts = body.get(kind) if isinstance(body, dict) else None
        if not isinstance(counts, dict):
            raise SyncRejectedError(f"Sync response has no {kind} counts")
        if counts.get("synced") != 1:
            raise SyncRejectedError(f"Server did not accept the {kind[:-1]} entry")


class SyncReconciler:
    """Drains the outbox through a gateway, one entry at a time."""

    def __init__(self, outbox: OfflineOutbox, gateway: SyncGateway) -> None:
        self._outbox = outbox
        self._gateway = gateway

    def reconcile(self) -> SyncReport:
        """Replay unsynced entries in insertion order, per kind.

        An accepted entry is removed before the next one is pushed; a failed
        entry stays queued for the next reconnect and the pass continues.
        """
        report = SyncReport()

        for entry in self._outbox.list_unsynced_cleanings():
            try:
                self._gateway.push_cleaning(entry)
            except HousekeepingError as exc:
                report.cleanings.failed += 1
                logger.warning("Outbox cleaning %s not synced: %s", entry.entry_id, exc)
                continue
            except Exception:
                report.cleanings.failed += 1
                logger.exception("Unexpected error syncing outbox cleaning %s", entry.entry_id)
                continue
            self._outbox.remove_cleaning(entry.entry_id)
            report.cleanings.synced += 1

        for entry in self._outbox.list_unsynced_incidents():
            try:
                self._gateway.push_incident(entry)
            except HousekeepingError as exc:
                report.incidents.failed += 1
                logger.warning("Outbox incident %s not synced: %s", entry.entry_id, exc)
                continue
            except Exception:
                report.incidents.failed += 1
                logger.exception("Unexpected error syncing outbox incident %s", entry.entry_id)
                continue
            self._outbox.remove_incident(entry.entry_id)
            report.incidents.synced += 1

        logger.info("Outbox reconciliation finished: %s", report.as_dict())
        return report


class OfflineFirstClient:
    """Housekeeper-side entry point that survives connectivity loss."""

    def __init__(
        self,
        user_id: str,
        outbox: OfflineOutbox,
        gateway: SyncGateway,
        is_online: Callable[[], bool] = lambda: True,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._user_id = user_id
        self._outbox = outbox
        self._gateway = gateway
        self._is_online = is_online
        self._clock = clock or utc_now

    def record_cleaning(
        self,
        room_id: str,
        service_date: str,
        cleaned_at: Optional[datetime] = None,
    ) -> DeliveryOutcome:
        validate_room_id(room_id)
        validate_service_date(service_date)
        entry = PendingCleaning(
            room_id=room_id,
            user_id=self._user_id,
            date=service_date,
            cleaned_at=ensure_utc(cleaned_at) if cleaned_at else self._clock(),
        )
        if self._is_online():
            try:
                self._gateway.push_cleaning(entry)
                return DeliveryOutcome.APPLIED
            except GatewayUnavailableError as exc:
                logger.warning("Server unreachable, queueing cleaning of room %s: %s", room_id, exc)
        self._outbox.add_cleaning(entry.room_id, entry.user_id, entry.date, entry.cleaned_at)
        return DeliveryOutcome.QUEUED

    def report_incident(
        self,
        room_id: str,
        description: str,
        photos: Sequence[bytes] = (),
    ) -> DeliveryOutcome:
        validate_incident_report(
            room_id,
            description,
            photos,
            self._settings.max_incident_photos,
        )
        entry = PendingIncident(
            room_id=room_id,
            user_id=self._user_id,
            description=description,
            photos=tuple(encode_photo_data_url(photo) for photo in photos),
            created_at=self._clock(),
        )
        if self._is_online():
            try:
                self._gateway.push_incident(entry)
                return DeliveryOutcome.APPLIED
            except GatewayUnavailableError as exc:
                logger.warning("Server unreachable, queueing incident on room %s: %s", room_id, exc)
        self._outbox.add_incident(
            entry.room_id,
            entry.user_id,
            entry.description,
            entry.photos,
            entry.created_at,
        )
        return DeliveryOutcome.QUEUED

    def reconnect(self) -> SyncReport:
        return SyncReconciler(self._outbox, self._gateway).reconcile()

    def pending_counts(self) -> dict[str, int]:
        return self._outbox.count_unsynced()
