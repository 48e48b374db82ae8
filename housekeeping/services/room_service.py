"""Room listings and reception-driven room state changes."""

from __future__ import annotations

from typing import Optional

from housekeeping.domain.constraints import (
    STAFF_MANAGER_ROLES,
    require_role,
    validate_room_id,
    validate_service_date,
)
from housekeeping.domain.errors import NotFoundError, ValidationError
from housekeeping.domain.models import (
    Assignment,
    Cleaning,
    Identity,
    Incident,
    IncidentStatus,
    Room,
    RoomStatus,
    RoomView,
    UserRole,
)
from housekeeping.domain.state_machine import (
    apply_admin_edit,
    apply_occupancy,
    apply_status_edit,
    is_pending,
)
from housekeeping.repository.data_repository import DataRepository
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class RoomService:
    """Implements GetRooms plus occupancy, status and administrative edits."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def get_rooms(
        self,
        actor: Identity,
        service_date: str,
        user_id: Optional[str] = None,
        view_all: bool = False,
    ) -> list[RoomView]:
        """Return rooms with their assignment, cleaning and incident context.

        Housekeepers are always scoped to their own assignments and cleanings
        and only see assigned rooms unless ``view_all`` is set. Reception and
        admins see every room; ``user_id`` narrows the assignee considered.
        """
        validate_service_date(service_date)
        scoped_user = actor.user_id if actor.role == UserRole.HOUSEKEEPER else user_id

        assignments = self._repository.list_assignments(service_date, user_id=scoped_user)
        if actor.role == UserRole.HOUSEKEEPER and not view_all:
            rooms = self._repository.list_rooms(
                room_ids=sorted({assignment.room_id for assignment in assignments})
            )
        else:
            rooms = self._repository.list_rooms()

        assignments_by_room: dict[str, list[Assignment]] = {}
        for assignment in assignments:
            assignments_by_room.setdefault(assignment.room_id, []).append(assignment)

        latest_cleaning: dict[str, Cleaning] = {}
        for cleaning in self._repository.list_cleanings(service_date, user_id=scoped_user):
            current = latest_cleaning.get(cleaning.room_id)
            if current is None or cleaning.cleaned_at > current.cleaned_at:
                latest_cleaning[cleaning.room_id] = cleaning

        latest_incident: dict[str, Incident] = {}
        for incident in self._repository.list_incidents(status=IncidentStatus.OPEN):
            current = latest_incident.get(incident.room_id)
            if current is None or incident.created_at > current.created_at:
                latest_incident[incident.room_id] = incident

        views: list[RoomView] = []
        for room in rooms:
            room_assignments = tuple(assignments_by_room.get(room.room_id, ()))
            cleaning = latest_cleaning.get(room.room_id)
            latest_assigned_at = max(
                (assignment.assigned_at for assignment in room_assignments),
                default=None,
            )
            views.append(
                RoomView(
                    room=room,
                    assignments=room_assignments,
                    latest_cleaning=cleaning,
                    open_incident=latest_incident.get(room.room_id),
                    is_pending=is_pending(
                        latest_assigned_at,
                        None if cleaning is None else cleaning.cleaned_at,
                    ),
                )
            )
        return views

    def list_pending_rooms(
        self,
        actor: Identity,
        service_date: str,
        view_all: bool = False,
    ) -> list[RoomView]:
        return [
            view
            for view in self.get_rooms(actor, service_date, view_all=view_all)
            if view.is_pending
        ]

    def get_room(self, actor: Identity, room_id: str) -> Room:
        validate_room_id(room_id)
        room = self._repository.get_room(room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    def create_room(self, actor: Identity, number: str, floor: Optional[int] = None) -> Room:
        require_role(actor, *STAFF_MANAGER_ROLES)
        if not number or not number.strip():
            raise ValidationError("number must not be empty")
        return self._repository.create_room(number.strip(), floor)

    def update_room(
        self,
        actor: Identity,
        room_id: str,
        *,
        is_occupied: Optional[bool] = None,
        status: Optional[RoomStatus] = None,
        number: Optional[str] = None,
        floor: Optional[int] = None,
    ) -> Room:
        """Apply a reception edit through the state machine.

        Occupancy changes are edge-triggered; ``status`` only accepts the
        direct edits the state machine allows; ``number``/``floor`` never
        touch status.
        """
        require_role(actor, *STAFF_MANAGER_ROLES)
        validate_room_id(room_id)
        if is_occupied is not None and status is not None:
            raise ValidationError("Send either is_occupied or status, not both")
        if number is not None and not number.strip():
            raise ValidationError("number must not be empty")

        def transition(room: Room) -> Room:
            next_room = apply_admin_edit(
                room,
                number=None if number is None else number.strip(),
                floor=floor,
            )
            if is_occupied is not None:
                next_room = apply_occupancy(next_room, is_occupied)
            if status is not None:
                next_room = apply_status_edit(next_room, status)
            return next_room

        room = self._repository.transition_room(room_id, transition)
        logger.info(
            "Room %s updated by %s: status=%s occupied=%s",
            room.number,
            actor.user_id,
            room.status.value,
            room.is_occupied,
        )
        return room
