"""Cleaning completion and cleaning history."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from housekeeping.domain.constraints import (
    require_self_or_manager,
    validate_date_range,
    validate_room_id,
    validate_service_date,
)
from housekeeping.domain.errors import ValidationError
from housekeeping.domain.models import Cleaning, Identity, UserRole
from housekeeping.domain.state_machine import apply_cleaning
from housekeeping.repository.data_repository import DataRepository
from housekeeping.utils.clock import ensure_utc
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class CleaningService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def record_cleaning(
        self,
        actor: Identity,
        room_id: str,
        user_id: str,
        service_date: str,
        cleaned_at: datetime,
    ) -> Cleaning:
        """Record that a room was cleaned and fold it into room/assignment state.

        This is an append-only event: recording the same cleaning twice stores
        two rows while the room converges to the same status.
        """
        validate_room_id(room_id)
        if not user_id:
            raise ValidationError("user_id is required")
        require_self_or_manager(actor, user_id)
        validate_service_date(service_date)
        cleaning = self._repository.record_cleaning(
            room_id=room_id,
            user_id=user_id,
            service_date=service_date,
            cleaned_at=ensure_utc(cleaned_at),
            transition=lambda room: apply_cleaning(room, user_id),
        )
        logger.info(
            "Cleaning recorded for room %s by %s on %s (submitted by %s)",
            room_id,
            user_id,
            service_date,
            actor.user_id,
        )
        return cleaning

    def list_cleanings(
        self,
        actor: Identity,
        service_date: str,
        room_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Cleaning]:
        validate_service_date(service_date)
        if actor.role == UserRole.HOUSEKEEPER:
            user_id = actor.user_id
        return self._repository.list_cleanings(service_date, room_id=room_id, user_id=user_id)

    def cleaning_history(
        self,
        actor: Identity,
        start_date: str,
        end_date: str,
        user_id: Optional[str] = None,
    ) -> list[Cleaning]:
        """Cleanings in an inclusive range; only admins may filter by user."""
        validate_date_range(start_date, end_date)
        if actor.role == UserRole.HOUSEKEEPER:
            scoped_user: Optional[str] = actor.user_id
        elif actor.role == UserRole.ADMIN:
            scoped_user = user_id
        else:
            scoped_user = None
        return self._repository.list_cleanings(start_date, end_date, user_id=scoped_user)
