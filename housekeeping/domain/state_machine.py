"""Room status transition rules.

Every function takes the current ``Room`` and returns the next one. Services
run them inside the repository transaction that persists the result, so the
rules here are the only place a room's ``status``/``is_occupied`` pair is
decided.

Summary of the lifecycle::

    VACANT --occupied--> OCCUPIED --vacated--> CHECKOUT_PENDING
    any --assigned--> CLEANING_PENDING --cleaned--> CLEAN
    any --incident--> DISABLED --resolved--> CLEAN

DISABLED is sticky: only incident resolution leaves it.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from housekeeping.domain.errors import IllegalTransitionError
from housekeeping.domain.models import Room, RoomStatus


DIRECT_EDIT_TARGETS = frozenset({RoomStatus.VACANT})
RELEASABLE_STATUSES = frozenset({RoomStatus.CLEAN, RoomStatus.VACANT})


def apply_occupancy(room: Room, is_occupied: bool) -> Room:
    """Edge-triggered occupancy toggle.

    Marking a room occupied always yields OCCUPIED and vacating it always
    yields CHECKOUT_PENDING so checkout re-enters the cleaning pipeline.
    Re-sending the current value is a no-op. A DISABLED room records the new
    occupancy but keeps its status.
    """
    if room.is_occupied == is_occupied:
        return room
    if room.status == RoomStatus.DISABLED:
        return replace(room, is_occupied=is_occupied)
    next_status = RoomStatus.OCCUPIED if is_occupied else RoomStatus.CHECKOUT_PENDING
    return replace(room, is_occupied=is_occupied, status=next_status)


def apply_assignment(room: Room) -> Room:
    if room.status == RoomStatus.DISABLED:
        return room
    return replace(room, status=RoomStatus.CLEANING_PENDING)


def apply_cleaning(room: Room, user_id: str) -> Room:
    if room.status == RoomStatus.DISABLED:
        return replace(room, last_cleaned_by=user_id)
    return replace(room, status=RoomStatus.CLEAN, last_cleaned_by=user_id)


def apply_incident_reported(room: Room) -> Room:
    return replace(room, status=RoomStatus.DISABLED)


def apply_incident_resolved(
    room: Room,
    remaining_open_incidents: int,
    require_all_closed: bool = False,
) -> Room:
    """Leave DISABLED for CLEAN once an incident is resolved.

    By default any single resolution clears DISABLED even when other
    incidents on the room are still OPEN. With ``require_all_closed`` the
    room stays DISABLED until the last OPEN incident is resolved.
    """
    if require_all_closed and remaining_open_incidents > 0:
        return replace(room, status=RoomStatus.DISABLED)
    return replace(room, status=RoomStatus.CLEAN)


def apply_status_edit(room: Room, target: RoomStatus) -> Room:
    """Direct reception edit; only releasing a clean room back to VACANT."""
    if target not in DIRECT_EDIT_TARGETS:
        raise IllegalTransitionError(
            f"Status {target.value} cannot be set directly; use the dedicated operation"
        )
    if room.status == target:
        return room
    if room.status not in RELEASABLE_STATUSES:
        raise IllegalTransitionError(
            f"Room {room.number} cannot move from {room.status.value} to {target.value}"
        )
    if room.is_occupied:
        raise IllegalTransitionError(
            f"Room {room.number} is occupied and cannot be marked {target.value}"
        )
    return replace(room, status=target)


def apply_admin_edit(
    room: Room,
    number: Optional[str] = None,
    floor: Optional[int] = None,
) -> Room:
    """Administrative edits never touch status or occupancy."""
    return replace(
        room,
        number=number if number is not None else room.number,
        floor=floor if floor is not None else room.floor,
    )


def is_pending(
    latest_assigned_at: Optional[datetime],
    latest_cleaned_at: Optional[datetime],
) -> bool:
    """A room is dirty when never cleaned or reassigned after its last cleaning."""
    if latest_cleaned_at is None:
        return True
    if latest_assigned_at is None:
        return False
    return latest_assigned_at > latest_cleaned_at
