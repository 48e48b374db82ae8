"""Time helpers shared by services and the repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive timestamps as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db_timestamp(value: datetime) -> str:
    # Fixed-width text keeps ORDER BY on timestamp columns chronological.
    return ensure_utc(value).isoformat(timespec="microseconds")


def from_db_timestamp(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))
