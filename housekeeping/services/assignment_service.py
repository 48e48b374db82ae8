"""Assignment ledger: who cleans which room on which date."""

from __future__ import annotations

from typing import Optional, Sequence

from housekeeping.domain.constraints import (
    STAFF_MANAGER_ROLES,
    require_role,
    validate_room_id,
    validate_service_date,
)
from housekeeping.domain.errors import NotFoundError, NotificationError, ValidationError
from housekeeping.domain.models import Assignment, Identity, UserRole
from housekeeping.domain.state_machine import apply_assignment
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.notification_service import (
    LoggingNotificationSender,
    NotificationSender,
)
from housekeeping.utils.clock import Clock, utc_now
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

DEFAULT_ACTOR_LABEL = "Reception"


class AssignmentService:
    """Implements AssignRooms, RemoveAssignment and ReassignToLastCleaner."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        notifier: Optional[NotificationSender] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._notifier = notifier or LoggingNotificationSender()
        self._clock = clock or utc_now

    def assign_rooms(
        self,
        actor: Identity,
        room_ids: Sequence[str],
        user_id: str,
        service_date: str,
    ) -> list[Assignment]:
        """Upsert one assignment per room and move the rooms to CLEANING_PENDING.

        Re-assigning an existing (room, user, date) refreshes ``assigned_at``
        instead of creating a duplicate. The whole batch commits or nothing
        does; the notification is sent afterwards and its failure is only
        logged.
        """
        require_role(actor, *STAFF_MANAGER_ROLES)
        if not room_ids:
            raise ValidationError("room_ids must contain at least one room id")
        if not user_id or not user_id.strip():
            raise ValidationError("user_id is required")
        validate_service_date(service_date)
        for room_id in room_ids:
            validate_room_id(room_id)
        unique_room_ids = list(dict.fromkeys(room_ids))

        assignments, rooms = self._repository.assign_rooms(
            room_ids=unique_room_ids,
            user_id=user_id,
            service_date=service_date,
            assigned_at=self._clock(),
            transition=apply_assignment,
        )
        logger.info(
            "Assigned %s rooms to %s for %s",
            len(assignments),
            user_id,
            service_date,
        )

        room_numbers = sorted(room.number for room in rooms)
        try:
            self._notifier.notify(
                user_id,
                room_numbers,
                actor.display_name or DEFAULT_ACTOR_LABEL,
            )
        except NotificationError as exc:
            logger.warning("Assignment notification to %s failed: %s", user_id, exc)
        except Exception:
            logger.exception("Unexpected notifier failure for %s", user_id)
        return assignments

    def remove_assignment(self, actor: Identity, assignment_id: str) -> None:
        require_role(actor, *STAFF_MANAGER_ROLES)
        if not assignment_id:
            raise ValidationError("assignment id is required")
        self._repository.delete_assignment(assignment_id)
        logger.info("Assignment %s removed by %s", assignment_id, actor.user_id)

    def reassign_to_last_cleaner(
        self,
        actor: Identity,
        room_id: str,
        service_date: str,
        user_id: Optional[str] = None,
    ) -> Assignment:
        """Assign a single room, defaulting to whoever cleaned it last."""
        require_role(actor, *STAFF_MANAGER_ROLES)
        validate_room_id(room_id)
        target_user = user_id
        if target_user is None:
            room = self._repository.get_room(room_id)
            if room is None:
                raise NotFoundError(f"Room {room_id} not found")
            if room.last_cleaned_by is None:
                raise ValidationError(f"Room {room.number} has no previous cleaner")
            target_user = room.last_cleaned_by
        return self.assign_rooms(actor, [room_id], target_user, service_date)[0]

    def list_assignments(
        self,
        actor: Identity,
        service_date: str,
        user_id: Optional[str] = None,
    ) -> list[Assignment]:
        validate_service_date(service_date)
        if actor.role == UserRole.HOUSEKEEPER:
            user_id = actor.user_id
        return self._repository.list_assignments(service_date, user_id=user_id)
