from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from housekeeping.controllers.activity_controller import router as activity_router
from housekeeping.controllers.auth_controller import router as auth_router
from housekeeping.controllers.room_controller import router as room_router
from housekeeping.controllers.sync_controller import router as sync_router
from housekeeping.domain.models import Identity, Room, UserRole
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.assignment_service import AssignmentService
from housekeeping.services.auth_service import AuthService
from housekeeping.services.cleaning_service import CleaningService
from housekeeping.services.incident_service import IncidentService
from housekeeping.services.photo_service import LocalPhotoStorage
from housekeeping.services.room_service import RoomService
from housekeeping.services.sync_service import SyncService
from housekeeping.utils.config import Settings, get_settings


ACCESS_TOKEN = "test-access-token"
SERVICE_DATE = "2024-01-10"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 24


class FakeClock:
    """Deterministic clock; each call returns the current instant."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 10, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str], str]] = []

    def notify(self, user_id, room_numbers, actor_label) -> None:
        self.calls.append((user_id, list(room_numbers), actor_label))


def build_test_settings(tmp_path, **overrides) -> Settings:
    get_settings.cache_clear()
    base = get_settings()
    values = {
        "database_path": tmp_path / "housekeeping.db",
        "outbox_path": tmp_path / "outbox.db",
        "photo_storage_dir": tmp_path / "photos",
        "photo_url_prefix": "/uploads/incidents",
        "access_token": ACCESS_TOKEN,
        "max_incident_photos": 3,
        "incident_resolution_requires_all_closed": False,
        "notification_webhook_url": None,
        "seed_demo_data": True,
    }
    values.update(overrides)
    return base.model_copy(update=values)


def identity_for(repository: DataRepository, email: str) -> Identity:
    user = next(item for item in repository.list_users() if item.email == email)
    return Identity(user_id=user.user_id, role=user.role, display_name=user.name)


def room_by_number(repository: DataRepository, number: str) -> Room:
    return next(room for room in repository.list_rooms() if room.number == number)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return build_test_settings(tmp_path)


@pytest.fixture
def repository(settings) -> DataRepository:
    repo = DataRepository(settings)
    repo.initialize_database()
    repo.seed_demo_data()
    return repo


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def admin(repository) -> Identity:
    return identity_for(repository, "admin@hotel.com")


@pytest.fixture
def reception(repository) -> Identity:
    return identity_for(repository, "reception@hotel.com")


@pytest.fixture
def housekeeper(repository) -> Identity:
    identity = identity_for(repository, "housekeeper1@hotel.com")
    assert identity.role == UserRole.HOUSEKEEPER
    return identity


@pytest.fixture
def other_housekeeper(repository) -> Identity:
    return identity_for(repository, "housekeeper2@hotel.com")


def build_test_app(settings: Settings, repository: DataRepository, clock=None, notifier=None) -> FastAPI:
    photo_storage = LocalPhotoStorage(settings)
    cleaning_service = CleaningService(repository=repository, settings=settings)
    incident_service = IncidentService(
        repository=repository,
        photo_storage=photo_storage,
        settings=settings,
        clock=clock,
    )

    app = FastAPI()
    app.include_router(auth_router)
    app.include_router(room_router)
    app.include_router(activity_router)
    app.include_router(sync_router)
    app.state.repository = repository
    app.state.auth_service = AuthService(repository=repository, settings=settings)
    app.state.room_service = RoomService(repository=repository, settings=settings)
    app.state.assignment_service = AssignmentService(
        repository=repository,
        notifier=notifier or RecordingNotifier(),
        settings=settings,
        clock=clock,
    )
    app.state.cleaning_service = cleaning_service
    app.state.incident_service = incident_service
    app.state.sync_service = SyncService(
        cleaning_service=cleaning_service,
        incident_service=incident_service,
        settings=settings,
    )
    return app


def login_headers(client: TestClient, email: str) -> dict[str, str]:
    response = client.post("/login", json={"username": email, "access_token": ACCESS_TOKEN})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def app(settings, repository, clock) -> FastAPI:
    return build_test_app(settings, repository, clock=clock)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
