from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import (
    ACCESS_TOKEN,
    PNG_BYTES,
    SERVICE_DATE,
    RecordingNotifier,
    build_test_app,
    build_test_settings,
    login_headers,
    room_by_number,
)
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.photo_service import encode_photo_data_url


def test_login_requires_configured_and_matching_token(tmp_path, clock):
    settings = build_test_settings(tmp_path, access_token=None)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_data()
    client = TestClient(build_test_app(settings, repository, clock=clock))

    not_configured = client.post(
        "/login",
        json={"username": "reception@hotel.com", "access_token": ACCESS_TOKEN},
    )
    assert not_configured.status_code == 401
    assert "HOUSEKEEPING_ACCESS_TOKEN" in not_configured.json()["detail"]


def test_login_rejects_wrong_token_and_unknown_user(client):
    wrong_token = client.post(
        "/login",
        json={"username": "reception@hotel.com", "access_token": "nope"},
    )
    assert wrong_token.status_code == 401

    unknown_user = client.post(
        "/login",
        json={"username": "ghost@hotel.com", "access_token": ACCESS_TOKEN},
    )
    assert unknown_user.status_code == 401


def test_requests_without_session_are_unauthorized(client):
    assert client.get("/rooms").status_code == 401
    assert client.get("/rooms", headers={"Authorization": "Bearer bogus"}).status_code == 401
    assert client.post("/sync", json={"cleanings": [], "incidents": []}).status_code == 401


def test_logout_ends_session(client):
    headers = login_headers(client, "reception@hotel.com")
    assert client.post("/logout", headers=headers).status_code == 204
    assert client.get("/rooms", headers=headers).status_code == 401


def test_housekeeping_day_end_to_end(repository, settings, clock):
    notifier = RecordingNotifier()
    client = TestClient(build_test_app(settings, repository, clock=clock, notifier=notifier))
    reception = login_headers(client, "reception@hotel.com")
    housekeeper = login_headers(client, "housekeeper1@hotel.com")
    housekeeper_id = client.post(
        "/login",
        json={"username": "housekeeper1@hotel.com", "access_token": ACCESS_TOKEN},
    ).json()["user_id"]
    room_a = room_by_number(repository, "101")
    room_b = room_by_number(repository, "102")

    forbidden = client.post(
        "/assignments",
        json={"room_ids": [room_a.room_id], "user_id": housekeeper_id, "date": SERVICE_DATE},
        headers=housekeeper,
    )
    assert forbidden.status_code == 403

    assigned = client.post(
        "/assignments",
        json={
            "room_ids": [room_a.room_id, room_b.room_id],
            "user_id": housekeeper_id,
            "date": SERVICE_DATE,
        },
        headers=reception,
    )
    assert assigned.status_code == 201
    assert len(assigned.json()) == 2
    assert notifier.calls == [(housekeeper_id, ["101", "102"], "Reception")]

    my_rooms = client.get("/rooms", params={"date": SERVICE_DATE}, headers=housekeeper)
    assert my_rooms.status_code == 200
    assert [item["room"]["number"] for item in my_rooms.json()] == ["101", "102"]
    assert all(item["room"]["status"] == "CLEANING_PENDING" for item in my_rooms.json())
    assert all(item["is_pending"] for item in my_rooms.json())

    cleaned = client.post(
        "/cleanings",
        json={"room_id": room_a.room_id, "date": SERVICE_DATE},
        headers=housekeeper,
    )
    assert cleaned.status_code == 201
    assert cleaned.json()["user_id"] == housekeeper_id

    pending = client.get("/rooms/pending", params={"date": SERVICE_DATE}, headers=housekeeper)
    assert [item["room"]["number"] for item in pending.json()] == ["102"]

    reported = client.post(
        "/incidents",
        json={
            "room_id": room_b.room_id,
            "description": "Broken lamp",
            "photos": [encode_photo_data_url(PNG_BYTES)],
        },
        headers=housekeeper,
    )
    assert reported.status_code == 201
    incident = reported.json()
    assert incident["status"] == "OPEN"
    assert len(incident["photo_urls"]) == 1
    assert room_by_number(repository, "102").status.value == "DISABLED"

    not_reception = client.post(f"/incidents/{incident['incident_id']}/resolve", headers=housekeeper)
    assert not_reception.status_code == 403

    resolved = client.post(f"/incidents/{incident['incident_id']}/resolve", headers=reception)
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "RESOLVED"
    assert room_by_number(repository, "102").status.value == "CLEAN"

    history = client.get(
        "/cleanings/history",
        params={"start_date": SERVICE_DATE, "end_date": SERVICE_DATE},
        headers=housekeeper,
    )
    assert [item["room_id"] for item in history.json()] == [room_a.room_id]


def test_reception_room_edits(client, repository):
    reception = login_headers(client, "reception@hotel.com")
    room = room_by_number(repository, "301")

    occupied = client.patch(f"/rooms/{room.room_id}", json={"is_occupied": True}, headers=reception)
    assert occupied.status_code == 200
    assert occupied.json()["status"] == "OCCUPIED"

    illegal = client.patch(f"/rooms/{room.room_id}", json={"status": "VACANT"}, headers=reception)
    assert illegal.status_code == 400

    vacated = client.patch(f"/rooms/{room.room_id}", json={"is_occupied": False}, headers=reception)
    assert vacated.json()["status"] == "CHECKOUT_PENDING"

    fetched = client.get(f"/rooms/{room.room_id}", headers=reception)
    assert fetched.json()["is_occupied"] is False

    missing = client.patch("/rooms/missing-room", json={"is_occupied": True}, headers=reception)
    assert missing.status_code == 404

    created = client.post("/rooms", json={"number": "401", "floor": 4}, headers=reception)
    assert created.status_code == 201
    duplicate = client.post("/rooms", json={"number": "401", "floor": 4}, headers=reception)
    assert duplicate.status_code == 400


def test_validation_errors_map_to_bad_request(client, repository):
    housekeeper = login_headers(client, "housekeeper1@hotel.com")
    room = room_by_number(repository, "201")

    bad_date = client.get("/rooms", params={"date": "10/01/2024"}, headers=housekeeper)
    assert bad_date.status_code == 400

    empty_description = client.post(
        "/incidents",
        json={"room_id": room.room_id, "description": "   "},
        headers=housekeeper,
    )
    assert empty_description.status_code == 400

    too_many_photos = client.post(
        "/incidents",
        json={
            "room_id": room.room_id,
            "description": "Leak",
            "photos": [encode_photo_data_url(PNG_BYTES)] * 4,
        },
        headers=housekeeper,
    )
    assert too_many_photos.status_code == 400

    not_base64 = client.post(
        "/incidents",
        json={"room_id": room.room_id, "description": "Leak", "photos": ["***"]},
        headers=housekeeper,
    )
    assert not_base64.status_code == 400
    assert repository.list_incidents() == []


def test_cleaning_on_behalf_of_another_housekeeper_is_forbidden(client, repository):
    housekeeper = login_headers(client, "housekeeper1@hotel.com")
    other_id = client.post(
        "/login",
        json={"username": "housekeeper2@hotel.com", "access_token": ACCESS_TOKEN},
    ).json()["user_id"]
    room = room_by_number(repository, "204")

    response = client.post(
        "/cleanings",
        json={"room_id": room.room_id, "date": SERVICE_DATE, "user_id": other_id},
        headers=housekeeper,
    )

    assert response.status_code == 403
    assert repository.count_cleanings(room.room_id) == 0


def test_sync_endpoint_reports_counts(client, repository, clock):
    housekeeper = login_headers(client, "housekeeper1@hotel.com")
    room = room_by_number(repository, "202")

    response = client.post(
        "/sync",
        json={
            "cleanings": [
                {"room_id": room.room_id, "date": SERVICE_DATE, "cleaned_at": clock.now.isoformat()},
                {"room_id": "missing-room", "date": SERVICE_DATE, "cleaned_at": clock.now.isoformat()},
            ],
            "incidents": [
                {"room_id": room.room_id, "description": "", "created_at": clock.now.isoformat()},
            ],
        },
        headers=housekeeper,
    )

    assert response.status_code == 200
    assert response.json() == {
        "cleanings": {"synced": 1, "failed": 1},
        "incidents": {"synced": 0, "failed": 1},
    }


def test_reassign_endpoint_uses_last_cleaner(client, repository):
    reception = login_headers(client, "reception@hotel.com")
    housekeeper = login_headers(client, "housekeeper2@hotel.com")
    room = room_by_number(repository, "303")

    no_cleaner = client.post(
        "/assignments/reassign",
        json={"room_id": room.room_id, "date": SERVICE_DATE},
        headers=reception,
    )
    assert no_cleaner.status_code == 400

    client.post("/cleanings", json={"room_id": room.room_id, "date": "2024-01-09"}, headers=housekeeper)
    reassigned = client.post(
        "/assignments/reassign",
        json={"room_id": room.room_id, "date": SERVICE_DATE},
        headers=reception,
    )
    assert reassigned.status_code == 201
    assignment = reassigned.json()

    listed = client.get("/assignments", params={"date": SERVICE_DATE}, headers=housekeeper)
    assert [item["assignment_id"] for item in listed.json()] == [assignment["assignment_id"]]

    removed = client.delete(f"/assignments/{assignment['assignment_id']}", headers=reception)
    assert removed.status_code == 204
    missing = client.delete(f"/assignments/{assignment['assignment_id']}", headers=reception)
    assert missing.status_code == 404
