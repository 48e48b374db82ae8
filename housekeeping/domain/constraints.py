"""Domain-level validation rules shared by services."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional, Sequence

from housekeeping.domain.errors import ForbiddenError, ValidationError
from housekeeping.domain.models import Identity, UserRole


STAFF_MANAGER_ROLES = (UserRole.RECEPTION, UserRole.ADMIN)

_SERVICE_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def require_role(actor: Identity, *roles: UserRole) -> None:
    if actor.role not in roles:
        allowed = ", ".join(role.value for role in roles)
        raise ForbiddenError(f"Role {actor.role.value} is not allowed; requires one of: {allowed}")


def require_self_or_manager(actor: Identity, user_id: str) -> None:
    """Housekeepers may only act under their own user id."""
    if user_id != actor.user_id and actor.role not in STAFF_MANAGER_ROLES:
        raise ForbiddenError("Cannot record activity on behalf of another user")


def validate_service_date(value: str) -> None:
    # Stored dates compare as text, so only the zero-padded form is accepted.
    if not isinstance(value, str) or not _SERVICE_DATE_PATTERN.match(value):
        raise ValidationError("date must follow YYYY-MM-DD format")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise ValidationError("date must follow YYYY-MM-DD format") from exc


def validate_date_range(start_date: str, end_date: str) -> None:
    validate_service_date(start_date)
    validate_service_date(end_date)
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")


def validate_room_id(room_id: Optional[str]) -> None:
    if not isinstance(room_id, str) or not room_id.strip():
        raise ValidationError("room_id is required")


def validate_incident_report(
    room_id: Optional[str],
    description: Optional[str],
    photos: Sequence[object],
    max_photos: int,
) -> None:
    validate_room_id(room_id)
    if not description or not description.strip():
        raise ValidationError("description must not be empty")
    if len(photos) > max_photos:
        raise ValidationError(f"Maximum {max_photos} photos allowed")
