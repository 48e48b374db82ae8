"""Runtime settings resolved from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings; each field reads the upper-cased env var of its name."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    app_name: str = "Hotel Housekeeping Sync"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    database_path: Path = Path("data/housekeeping.db")
    outbox_path: Path = Path("data/outbox.db")
    photo_storage_dir: Path = Path("data/uploads/incidents")
    photo_url_prefix: str = "/uploads/incidents"
    access_token: Optional[str] = Field(default=None, validation_alias="HOUSEKEEPING_ACCESS_TOKEN")
    max_incident_photos: int = Field(default=3, ge=0)
    incident_resolution_requires_all_closed: bool = False
    notification_webhook_url: Optional[str] = None
    notification_timeout_seconds: float = 5.0
    sync_server_url: str = "http://127.0.0.1:8000"
    sync_timeout_seconds: float = 10.0
    seed_demo_data: bool = True

    @field_validator("access_token", "notification_webhook_url", mode="before")
    @classmethod
    def blank_as_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("photo_url_prefix")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests clear the cache and use model_copy()."""
    return Settings()
