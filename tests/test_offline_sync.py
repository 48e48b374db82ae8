"""Offline outbox, server-side SyncBatch and client reconciliation."""

from __future__ import annotations

import base64
from datetime import timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import PNG_BYTES, SERVICE_DATE, build_test_app, login_headers, room_by_number
from housekeeping.domain.errors import GatewayUnavailableError, SyncRejectedError, ValidationError
from housekeeping.domain.models import PendingCleaning, RoomStatus
from housekeeping.repository.outbox_repository import OfflineOutbox
from housekeeping.services.cleaning_service import CleaningService
from housekeeping.services.incident_service import IncidentService
from housekeeping.services.offline_sync import (
    DeliveryOutcome,
    HttpSyncGateway,
    LocalSyncGateway,
    OfflineFirstClient,
    SyncReconciler,
)
from housekeeping.services.photo_service import LocalPhotoStorage, encode_photo_data_url
from housekeeping.services.sync_service import SyncService


class UnreachableGateway:
    def __init__(self) -> None:
        self.attempts = 0

    def push_cleaning(self, entry) -> None:
        self.attempts += 1
        raise GatewayUnavailableError("connection refused")

    def push_incident(self, entry) -> None:
        self.attempts += 1
        raise GatewayUnavailableError("connection refused")


def _sync_service(repository, settings, clock) -> SyncService:
    return SyncService(
        cleaning_service=CleaningService(repository=repository, settings=settings),
        incident_service=IncidentService(
            repository=repository,
            photo_storage=LocalPhotoStorage(settings),
            settings=settings,
            clock=clock,
        ),
        settings=settings,
    )


@pytest.fixture
def outbox(settings) -> OfflineOutbox:
    queue = OfflineOutbox(settings)
    queue.initialize()
    return queue


# --- outbox ---

def test_outbox_keeps_insertion_order_and_removes_single_entries(outbox, clock):
    first = outbox.add_cleaning("room-a", "user-1", SERVICE_DATE, clock.now)
    second = outbox.add_cleaning("room-b", "user-1", SERVICE_DATE, clock.advance(minutes=1))
    outbox.add_incident("room-a", "user-1", "Leak", ["data:image/png;base64,AAAA"], clock.now)

    assert [entry.room_id for entry in outbox.list_unsynced_cleanings()] == ["room-a", "room-b"]
    assert outbox.count_unsynced() == {"cleanings": 2, "incidents": 1}
    assert outbox.get_incident(1).photos == ("data:image/png;base64,AAAA",)

    outbox.remove_cleaning(first.entry_id)

    assert outbox.get_cleaning(first.entry_id) is None
    assert [entry.entry_id for entry in outbox.list_unsynced_cleanings()] == [second.entry_id]
    assert outbox.get_cleaning(second.entry_id).cleaned_at == second.cleaned_at


# --- server-side SyncBatch ---

def test_sync_batch_counts_good_and_bad_base64_incidents(repository, settings, clock, housekeeper):
    service = _sync_service(repository, settings, clock)
    room = room_by_number(repository, "101")
    created_at = clock.now - timedelta(hours=3)

    report = service.sync_batch(
        housekeeper,
        cleanings=[],
        incidents=[
            {
                "room_id": room.room_id,
                "description": "Broken lamp",
                "photos": [encode_photo_data_url(PNG_BYTES)],
                "created_at": created_at.isoformat(),
            },
            {
                "room_id": room.room_id,
                "description": "Broken mirror",
                "photos": ["data:image/png;base64,@@not-base64@@"],
                "created_at": created_at.isoformat(),
            },
        ],
    )

    assert report.as_dict() == {
        "cleanings": {"synced": 0, "failed": 0},
        "incidents": {"synced": 1, "failed": 1},
    }
    incidents = repository.list_incidents(room_id=room.room_id)
    assert [item.description for item in incidents] == ["Broken lamp"]
    assert incidents[0].created_at == created_at
    assert len(incidents[0].photos) == 1


def test_sync_batch_accepts_camel_case_and_defaults_date(repository, settings, clock, housekeeper):
    service = _sync_service(repository, settings, clock)
    room = room_by_number(repository, "102")

    report = service.sync_batch(
        housekeeper,
        cleanings=[{"roomId": room.room_id, "cleanedAt": "2024-01-09T23:30:00+00:00"}],
        incidents=[],
    )

    assert report.cleanings.synced == 1
    stored = repository.list_cleanings("2024-01-09")
    assert [(item.user_id, item.room_id) for item in stored] == [(housekeeper.user_id, room.room_id)]
    assert room_by_number(repository, "102").status == RoomStatus.CLEAN


def test_sync_batch_isolates_malformed_cleanings(repository, settings, clock, housekeeper):
    service = _sync_service(repository, settings, clock)
    room = room_by_number(repository, "103")

    report = service.sync_batch(
        housekeeper,
        cleanings=[
            {"room_id": "missing-room", "date": SERVICE_DATE, "cleaned_at": clock.now.isoformat()},
            {"room_id": room.room_id, "date": SERVICE_DATE},
            {"room_id": room.room_id, "date": SERVICE_DATE, "cleaned_at": clock.now.isoformat()},
        ],
        incidents=[],
    )

    assert report.cleanings.synced == 1
    assert report.cleanings.failed == 2
    assert repository.count_cleanings(room.room_id) == 1


def test_sync_batch_counts_entries_with_wrong_field_types(repository, settings, clock, housekeeper):
    service = _sync_service(repository, settings, clock)
    room = room_by_number(repository, "107")

    report = service.sync_batch(
        housekeeper,
        cleanings=[
            {"roomId": 101, "cleanedAt": clock.now.isoformat()},
            "not-an-object",
            {"roomId": room.room_id, "cleanedAt": clock.now.isoformat()},
        ],
        incidents=[{"roomId": ["101"], "description": "Leak", "createdAt": clock.now.isoformat()}],
    )

    assert report.as_dict() == {
        "cleanings": {"synced": 1, "failed": 2},
        "incidents": {"synced": 0, "failed": 1},
    }
    assert repository.count_cleanings(room.room_id) == 1


def test_sync_batch_keeps_going_after_unexpected_error(repository, settings, clock, housekeeper, monkeypatch):
    service = _sync_service(repository, settings, clock)
    room = room_by_number(repository, "108")
    original = service.apply_cleaning_entry
    calls = []

    def flaky_apply(actor, entry):
        calls.append(entry.room_id)
        if len(calls) == 1:
            raise RuntimeError("disk hiccup")
        return original(actor, entry)

    monkeypatch.setattr(service, "apply_cleaning_entry", flaky_apply)
    entry = {"room_id": room.room_id, "date": SERVICE_DATE, "cleaned_at": clock.now.isoformat()}

    report = service.sync_batch(housekeeper, cleanings=[entry, entry], incidents=[])

    assert (report.cleanings.synced, report.cleanings.failed) == (1, 1)
    assert repository.count_cleanings(room.room_id) == 1


def test_housekeeper_cannot_sync_work_for_another_user(
    repository, settings, clock, housekeeper, other_housekeeper
):
    service = _sync_service(repository, settings, clock)
    room = room_by_number(repository, "109")

    report = service.sync_batch(
        housekeeper,
        cleanings=[
            {
                "room_id": room.room_id,
                "user_id": other_housekeeper.user_id,
                "date": SERVICE_DATE,
                "cleaned_at": clock.now.isoformat(),
            }
        ],
        incidents=[],
    )

    assert report.cleanings.failed == 1
    assert repository.count_cleanings(room.room_id) == 0


def test_sync_batch_skips_empty_and_non_image_photos(repository, settings, clock, housekeeper):
    service = _sync_service(repository, settings, clock)
    room = room_by_number(repository, "104")
    text_payload = base64.b64encode(b"just some text").decode("ascii")

    report = service.sync_batch(
        housekeeper,
        cleanings=[],
        incidents=[
            {
                "room_id": room.room_id,
                "description": "Broken lamp",
                "photos": ["", text_payload, base64.b64encode(PNG_BYTES).decode("ascii")],
                "created_at": clock.now.isoformat(),
            },
        ],
    )

    assert report.incidents.synced == 1
    incident = repository.list_incidents(room_id=room.room_id)[0]
    assert len(incident.photos) == 1
    assert incident.photos[0].url.endswith(".png")


def test_sync_batch_rejects_more_than_three_photos(repository, settings, clock, housekeeper):
    service = _sync_service(repository, settings, clock)
    room = room_by_number(repository, "105")
    photo = encode_photo_data_url(PNG_BYTES)

    report = service.sync_batch(
        housekeeper,
        cleanings=[],
        incidents=[
            {
                "room_id": room.room_id,
                "description": "Flooded bathroom",
                "photos": [photo] * 4,
                "created_at": clock.now.isoformat(),
            },
        ],
    )

    assert report.incidents.failed == 1
    assert repository.list_incidents(room_id=room.room_id) == []


# --- client-side reconciliation ---

def test_offline_cleaning_reconciles_with_original_timestamp(
    repository, settings, clock, outbox, housekeeper
):
    online = {"value": False}
    client = OfflineFirstClient(
        user_id=housekeeper.user_id,
        outbox=outbox,
        gateway=LocalSyncGateway(_sync_service(repository, settings, clock), housekeeper),
        is_online=lambda: online["value"],
        settings=settings,
        clock=clock,
    )
    room = room_by_number(repository, "106")
    offline_moment = clock.now

    assert client.record_cleaning(room.room_id, SERVICE_DATE) == DeliveryOutcome.QUEUED
    assert repository.count_cleanings(room.room_id) == 0

    clock.advance(hours=4)
    online["value"] = True
    report = client.reconnect()

    assert report.cleanings.synced == 1
    assert client.pending_counts() == {"cleanings": 0, "incidents": 0}
    stored = repository.list_cleanings(SERVICE_DATE, room_id=room.room_id)
    assert [item.cleaned_at for item in stored] == [offline_moment]
    assert room_by_number(repository, "106").status == RoomStatus.CLEAN


def test_reconcile_keeps_only_the_failed_incident(repository, settings, clock, outbox, housekeeper):
    room = room_by_number(repository, "107")
    outbox.add_incident(
        room.room_id,
        housekeeper.user_id,
        "Broken lamp",
        [encode_photo_data_url(PNG_BYTES)],
        clock.now,
    )
    bad = outbox.add_incident(
        room.room_id,
        housekeeper.user_id,
        "Broken mirror",
        ["data:image/jpeg;base64,%%%"],
        clock.now,
    )
    reconciler = SyncReconciler(
        outbox,
        LocalSyncGateway(_sync_service(repository, settings, clock), housekeeper),
    )

    report = reconciler.reconcile()

    assert report.as_dict()["incidents"] == {"synced": 1, "failed": 1}
    assert [entry.entry_id for entry in outbox.list_unsynced_incidents()] == [bad.entry_id]


def test_stuck_entry_stays_queued_across_reconnects(repository, settings, clock, outbox, housekeeper):
    room = room_by_number(repository, "108")
    outbox.add_cleaning("missing-room", housekeeper.user_id, SERVICE_DATE, clock.now)
    outbox.add_cleaning(room.room_id, housekeeper.user_id, SERVICE_DATE, clock.now)
    reconciler = SyncReconciler(
        outbox,
        LocalSyncGateway(_sync_service(repository, settings, clock), housekeeper),
    )

    first = reconciler.reconcile()
    second = reconciler.reconcile()

    assert (first.cleanings.synced, first.cleanings.failed) == (1, 1)
    assert (second.cleanings.synced, second.cleanings.failed) == (0, 1)
    assert [entry.room_id for entry in outbox.list_unsynced_cleanings()] == ["missing-room"]


def test_unreachable_server_falls_back_to_outbox(settings, clock, outbox):
    gateway = UnreachableGateway()
    client = OfflineFirstClient(
        user_id="user-1",
        outbox=outbox,
        gateway=gateway,
        settings=settings,
        clock=clock,
    )

    assert client.record_cleaning("room-a", SERVICE_DATE) == DeliveryOutcome.QUEUED
    assert client.report_incident("room-a", "Leak", [PNG_BYTES]) == DeliveryOutcome.QUEUED
    assert gateway.attempts == 2
    assert client.pending_counts() == {"cleanings": 1, "incidents": 1}
    queued = outbox.list_unsynced_incidents()[0]
    assert queued.photos[0].startswith("data:image/png;base64,")


def test_invalid_incident_is_rejected_before_queueing(settings, clock, outbox):
    client = OfflineFirstClient(
        user_id="user-1",
        outbox=outbox,
        gateway=UnreachableGateway(),
        is_online=lambda: False,
        settings=settings,
        clock=clock,
    )

    with pytest.raises(ValidationError):
        client.report_incident("room-a", "", [])
    with pytest.raises(ValidationError):
        client.report_incident("room-a", "Leak", [PNG_BYTES] * 4)
    assert client.pending_counts() == {"cleanings": 0, "incidents": 0}


# --- HTTP transport ---

def test_http_gateway_reconciles_through_sync_endpoint(repository, settings, clock, outbox, housekeeper):
    app = build_test_app(settings, repository, clock=clock)
    http_client = TestClient(app)
    headers = login_headers(http_client, "housekeeper1@hotel.com")
    token = headers["Authorization"].split(" ", 1)[1]
    gateway = HttpSyncGateway(token, settings=settings, client=http_client)
    room = room_by_number(repository, "109")
    offline_moment = clock.now - timedelta(hours=1)

    outbox.add_cleaning(room.room_id, housekeeper.user_id, SERVICE_DATE, offline_moment)
    outbox.add_cleaning("missing-room", housekeeper.user_id, SERVICE_DATE, offline_moment)
    outbox.add_incident(room.room_id, housekeeper.user_id, "Broken lamp", [], offline_moment)

    report = SyncReconciler(outbox, gateway).reconcile()

    assert report.as_dict() == {
        "cleanings": {"synced": 1, "failed": 1},
        "incidents": {"synced": 1, "failed": 0},
    }
    assert [entry.room_id for entry in outbox.list_unsynced_cleanings()] == ["missing-room"]
    stored = repository.list_cleanings(SERVICE_DATE, room_id=room.room_id)
    assert [item.cleaned_at for item in stored] == [offline_moment]
    assert room_by_number(repository, "109").status == RoomStatus.DISABLED


def test_http_gateway_raises_when_server_rejects_entry(repository, settings, clock):
    app = build_test_app(settings, repository, clock=clock)
    http_client = TestClient(app)
    headers = login_headers(http_client, "housekeeper1@hotel.com")
    gateway = HttpSyncGateway(
        headers["Authorization"].split(" ", 1)[1],
        settings=settings,
        client=http_client,
    )
    entry = PendingCleaning(
        room_id="missing-room",
        user_id="user-1",
        date=SERVICE_DATE,
        cleaned_at=clock.now,
    )

    with pytest.raises(SyncRejectedError):
        gateway.push_cleaning(entry)


def _scripted_gateway(responses) -> HttpSyncGateway:
    pending = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        return pending.pop(0)

    client = httpx.Client(base_url="http://sync.local", transport=httpx.MockTransport(handler))
    return HttpSyncGateway("token", client=client)


def test_reconcile_continues_past_non_json_sync_response(settings, clock, outbox):
    accepted = {"cleanings": {"synced": 1, "failed": 0}, "incidents": {"synced": 0, "failed": 0}}
    gateway = _scripted_gateway(
        [
            httpx.Response(200, text="<html>maintenance</html>", headers={"content-type": "text/html"}),
            httpx.Response(200, json=accepted),
        ]
    )
    outbox.add_cleaning("room-a", "user-1", SERVICE_DATE, clock.now)
    outbox.add_cleaning("room-b", "user-1", SERVICE_DATE, clock.now)

    report = SyncReconciler(outbox, gateway).reconcile()

    assert (report.cleanings.synced, report.cleanings.failed) == (1, 1)
    assert [entry.room_id for entry in outbox.list_unsynced_cleanings()] == ["room-a"]


def test_http_gateway_rejects_unexpected_json_shapes(clock):
    gateway = _scripted_gateway(
        [
            httpx.Response(200, json=["synced"]),
            httpx.Response(200, json={"cleanings": "ok"}),
        ]
    )
    entry = PendingCleaning(room_id="room-a", user_id="user-1", date=SERVICE_DATE, cleaned_at=clock.now)

    with pytest.raises(SyncRejectedError):
        gateway.push_cleaning(entry)
    with pytest.raises(SyncRejectedError):
        gateway.push_cleaning(entry)
