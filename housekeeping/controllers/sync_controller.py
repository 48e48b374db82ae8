"""Controller layer for offline outbox reconciliation."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from housekeeping.controllers.dependencies import (
    get_current_identity,
    get_sync_service,
    to_http_exception,
)
from housekeeping.controllers.schemas import SyncResponse
from housekeeping.domain.errors import HousekeepingError
from housekeeping.domain.models import Identity
from housekeeping.services.sync_service import SyncService
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["sync"])


class SyncRequest(BaseModel):
    """Raw outbox entries; each one is parsed and validated on its own."""

    cleanings: list[dict[str, Any]] = Field(default_factory=list)
    incidents: list[dict[str, Any]] = Field(default_factory=list)


@router.post("/sync", response_model=SyncResponse, status_code=status.HTTP_200_OK)
async def sync(
    payload: SyncRequest,
    identity: Identity = Depends(get_current_identity),
    service: SyncService = Depends(get_sync_service),
) -> SyncResponse:
    """Apply queued offline work; per-entry failures are counted, not raised."""
    try:
        report = service.sync_batch(identity, payload.cleanings, payload.incidents)
        return SyncResponse.from_domain(report)
    except HousekeepingError as exc:
        raise to_http_exception(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected sync failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to synchronize offline data",
        ) from exc
