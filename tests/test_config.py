from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import configure_logging, get_logger


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("HOUSEKEEPING_ACCESS_TOKEN", "  shared-secret  ")
    monkeypatch.setenv("DATABASE_PATH", "/var/lib/housekeeping/main.db")
    monkeypatch.setenv("MAX_INCIDENT_PHOTOS", "5")
    monkeypatch.setenv("INCIDENT_RESOLUTION_REQUIRES_ALL_CLOSED", "true")
    monkeypatch.setenv("PHOTO_URL_PREFIX", "/media/incidents/")

    settings = get_settings()

    assert settings.access_token == "shared-secret"
    assert settings.database_path == Path("/var/lib/housekeeping/main.db")
    assert settings.max_incident_photos == 5
    assert settings.incident_resolution_requires_all_closed is True
    assert settings.photo_url_prefix == "/media/incidents"
    assert get_settings() is settings


def test_blank_optional_values_are_unset(monkeypatch):
    monkeypatch.setenv("HOUSEKEEPING_ACCESS_TOKEN", "   ")
    monkeypatch.setenv("NOTIFICATION_WEBHOOK_URL", "")

    settings = Settings()

    assert settings.access_token is None
    assert settings.notification_webhook_url is None


def test_settings_are_immutable():
    settings = Settings(access_token="abc")

    assert settings.access_token == "abc"
    with pytest.raises(ValidationError):
        settings.max_incident_photos = 10


def test_configure_logging_applies_injected_level():
    root = logging.getLogger()
    previous = root.level
    get_logger(__name__)
    try:
        configure_logging(Settings(log_level="debug"))
        assert root.level == logging.DEBUG
    finally:
        root.setLevel(previous)
