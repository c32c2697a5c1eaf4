from __future__ import annotations

from dataclasses import replace

from fastapi import FastAPI
from fastapi.testclient import TestClient

from spacebook.controllers.booking_controller import router as booking_router
from spacebook.controllers.space_controller import router as space_router
from spacebook.repository.data_repository import DataRepository
from spacebook.services.auth_service import AuthService
from spacebook.services.booking_service import BookingService
from spacebook.services.space_service import SpaceLockTable, SpaceService
from spacebook.utils.config import get_settings


def _build_test_app(tmp_path, admin_token: str = "") -> tuple[FastAPI, DataRepository]:
    get_settings.cache_clear()
    settings = replace(
        get_settings(),
        database_path=tmp_path / "api.db",
        admin_token=admin_token,
        allow_past_bookings=True,
    )
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_default_spaces()

    app = FastAPI()
    app.include_router(space_router)
    app.include_router(booking_router)
    app.state.repository = repository
    locks = SpaceLockTable()
    app.state.booking_service = BookingService(repository=repository, settings=settings, locks=locks)
    app.state.space_service = SpaceService(repository=repository, settings=settings, locks=locks)
    app.state.auth_service = AuthService(settings=settings)
    return app, repository


def _space_id(client: TestClient, name: str) -> str:
    spaces = client.get("/api/spaces").json()
    return next(space["id"] for space in spaces if space["name"] == name)


def _booking_body(space_id: str, **overrides) -> dict:
    body = {
        "name": "Sam",
        "email": "sam@example.com",
        "space_id": space_id,
        "date": "2024-01-01",
        "start_time": "09:00",
        "end_time": "10:00",
    }
    body.update(overrides)
    return body


def test_list_spaces_returns_seeded_registry(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)

    response = client.get("/api/spaces", params={"type": "desk"})

    assert response.status_code == 200
    assert [(item["name"], item["priority_order"]) for item in response.json()] == [
        ("Desk 1", 1),
        ("Desk 2", 2),
    ]


def test_recurring_booking_flow_over_http(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    office = _space_id(client, "Office 1")

    created = client.post(
        "/api/bookings",
        json=_booking_body(office, recurrence={"frequency": "weekly", "weekday": 1}),
    )
    assert created.status_code == 201
    body = created.json()
    assert body["recurring"] is True
    assert body["recurrence"] == {"frequency": "weekly", "weekday": 1}
    assert body["space_name"] == "Office 1"

    conflict = client.post(
        "/api/bookings",
        json=_booking_body(office, date="2024-02-05", start_time="09:30", end_time="10:00"),
    )
    assert conflict.status_code == 409

    accepted = client.post(
        "/api/bookings",
        json=_booking_body(office, date="2024-02-05", start_time="10:00", end_time="10:30"),
    )
    assert accepted.status_code == 201

    today = client.get("/api/bookings/today", params={"date": "2024-02-05"})
    assert today.status_code == 200
    assert len(today.json()) == 2


def test_monthly_recurrence_payload_uses_day_of_month_alias(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    office = _space_id(client, "Office 2")

    response = client.post(
        "/api/bookings",
        json=_booking_body(office, date="2024-01-31", recurrence={"dayOfMonth": 31}),
    )

    assert response.status_code == 201
    assert response.json()["recurrence"] == {"frequency": "monthly", "dayOfMonth": 31}
    april = client.get("/api/bookings/today", params={"date": "2024-04-30"}).json()
    may = client.get("/api/bookings/today", params={"date": "2024-05-31"}).json()
    assert april == []
    assert len(may) == 1


def test_invalid_payloads_are_rejected(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    office = _space_id(client, "Office 1")

    bad_time = client.post("/api/bookings", json=_booking_body(office, start_time="9am"))
    reversed_window = client.post(
        "/api/bookings",
        json=_booking_body(office, start_time="11:00", end_time="10:00"),
    )
    bad_rule = client.post(
        "/api/bookings",
        json=_booking_body(office, recurrence={"nth": 7, "weekday": 1}),
    )
    unknown_space = client.post("/api/bookings", json=_booking_body("nope"))

    assert bad_time.status_code == 422
    assert reversed_window.status_code == 400
    assert bad_rule.status_code == 422
    assert unknown_space.status_code == 404


def test_auto_booking_and_availability(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    params = {
        "type": "conference",
        "date": "2024-03-04",
        "start": "13:00",
        "end": "14:00",
        "name": "Sam",
        "email": "sam@example.com",
    }

    first = client.get("/api/bookings/auto", params=params)
    second = client.get("/api/bookings/auto", params=params)
    third = client.get("/api/bookings/auto", params=params)

    assert first.json()["space_name"] == "Conference Room 1"
    assert second.json()["space_name"] == "Conference Room 2"
    assert third.status_code == 404

    available = client.get(
        "/api/availability",
        params={"date": "2024-03-04", "start": "13:30", "end": "14:30", "type": "conference"},
    )
    assert available.status_code == 200
    assert available.json() == []

    later = client.get(
        "/api/availability",
        params={"date": "2024-03-04", "start": "14:00", "end": "15:00", "type": "conference"},
    )
    assert [item["name"] for item in later.json()] == ["Conference Room 1", "Conference Room 2"]


def test_admin_routes_require_login_when_token_configured(tmp_path):
    app, _ = _build_test_app(tmp_path, admin_token="secret-admin")
    client = TestClient(app)

    assert client.get("/api/bookings").status_code == 401
    assert client.post("/api/login", json={"admin_token": "wrong"}).status_code == 401

    login = client.post("/api/login", json={"admin_token": "secret-admin"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    created = client.post(
        "/api/spaces",
        json={"name": "Desk 3", "type": "desk", "priority_order": 0},
        headers=headers,
    )
    assert created.status_code == 201
    assert client.get("/api/bookings", headers=headers).status_code == 200

    auto = client.get(
        "/api/bookings/auto",
        params={
            "type": "desk",
            "date": "2024-03-04",
            "start": "09:00",
            "end": "10:00",
            "name": "Sam",
            "email": "sam@example.com",
        },
    )
    assert auto.json()["space_name"] == "Desk 3"

    cancel = client.delete(f"/api/bookings/{auto.json()['id']}", headers=headers)
    assert cancel.status_code == 200
    assert client.delete(f"/api/bookings/{auto.json()['id']}", headers=headers).status_code == 404

    unauthenticated_delete = client.delete(f"/api/spaces/{created.json()['id']}")
    assert unauthenticated_delete.status_code == 401


def _login(client: TestClient, admin_token: str = "secret-admin") -> dict:
    login = client.post("/api/login", json={"admin_token": admin_token})
    return {"Authorization": f"Bearer {login.json()['access_token']}"}


def test_kiosk_routes_require_admin_when_token_configured(tmp_path):
    app, _ = _build_test_app(tmp_path, admin_token="secret-admin")
    client = TestClient(app)
    office = _space_id(client, "Office 1")
    booking_id = client.post("/api/bookings", json=_booking_body(office)).json()["id"]

    assert client.get("/api/bookings/today", params={"date": "2024-01-01"}).status_code == 401
    assert client.post(f"/api/bookings/{booking_id}/checkin").status_code == 401
    assert client.get(f"/api/bookings/{booking_id}").status_code == 401

    headers = _login(client)
    today = client.get("/api/bookings/today", params={"date": "2024-01-01"}, headers=headers)
    assert [item["email"] for item in today.json()] == ["sam@example.com"]
    assert client.post(f"/api/bookings/{booking_id}/checkin", headers=headers).status_code == 200
    fetched = client.get(f"/api/bookings/{booking_id}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["checked_in"] is True
    assert client.get("/api/bookings/missing", headers=headers).status_code == 404


def test_logout_revokes_session(tmp_path):
    app, _ = _build_test_app(tmp_path, admin_token="secret-admin")
    client = TestClient(app)
    headers = _login(client)

    assert client.get("/api/bookings", headers=headers).status_code == 200
    assert client.post("/api/logout", headers=headers).status_code == 200
    assert client.get("/api/bookings", headers=headers).status_code == 401


def test_camel_case_fields_and_recurring_false_are_accepted(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    office = _space_id(client, "Office 1")

    one_off = client.post(
        "/api/bookings",
        json={
            "name": "Sam",
            "email": "sam@example.com",
            "spaceId": office,
            "date": "2024-01-01",
            "startTime": "09:00",
            "endTime": "10:00",
            "recurring": False,
        },
    )
    monthly = client.post(
        "/api/bookings",
        json={
            "name": "Sam",
            "email": "sam@example.com",
            "spaceId": office,
            "date": "2024-01-15",
            "startTime": "09:00",
            "endTime": "10:00",
            "recurring": {"dayOfMonth": 15},
        },
    )
    snake_false = client.post(
        "/api/bookings",
        json=_booking_body(office, date="2024-01-02", recurrence=False),
    )

    assert one_off.status_code == 201
    assert one_off.json()["recurring"] is False
    assert monthly.status_code == 201
    assert monthly.json()["recurrence"] == {"frequency": "monthly", "dayOfMonth": 15}
    assert snake_false.status_code == 201


def test_booking_until_midnight_over_http(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    office = _space_id(client, "Office 1")

    created = client.post(
        "/api/bookings",
        json=_booking_body(office, start_time="23:00", end_time="24:00"),
    )
    listed = client.get("/api/bookings")
    bad_start = client.post(
        "/api/bookings",
        json=_booking_body(office, date="2024-01-02", start_time="24:00", end_time="24:00"),
    )

    assert created.status_code == 201
    assert created.json()["end_time"] == "24:00"
    assert [item["end_time"] for item in listed.json()] == ["24:00"]
    assert bad_start.status_code == 422


def test_list_bookings_paginates_when_asked(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)
    office = _space_id(client, "Office 1")
    for day in ("2024-01-03", "2024-01-01", "2024-01-02"):
        assert client.post("/api/bookings", json=_booking_body(office, date=day)).status_code == 201

    plain = client.get("/api/bookings")
    paged = client.get("/api/bookings", params={"page": 2, "pageSize": 2})
    newest = client.get("/api/bookings", params={"sort": "desc", "limit": 1})
    since = client.get("/api/bookings", params={"from": "2024-01-02"})

    assert isinstance(plain.json(), list) and len(plain.json()) == 3
    assert paged.json()["total"] == 3
    assert paged.json()["offset"] == 2
    assert paged.json()["page"] == 2
    assert paged.json()["pageSize"] == 2
    assert [item["date"] for item in paged.json()["items"]] == ["2024-01-03"]
    assert [item["date"] for item in newest.json()["items"]] == ["2024-01-03"]
    assert [item["date"] for item in since.json()["items"]] == ["2024-01-02", "2024-01-03"]
    assert client.get("/api/bookings", params={"page": 0}).status_code == 422


def test_space_type_queries_ignore_case(tmp_path):
    app, _ = _build_test_app(tmp_path)
    client = TestClient(app)

    created = client.post("/api/spaces", json={"name": "Pod A", "type": "Pod", "priority_order": 1})
    listed = client.get("/api/spaces", params={"type": "Pod"})
    auto = client.get(
        "/api/bookings/auto",
        params={
            "type": "POD",
            "date": "2024-03-04",
            "start": "09:00",
            "end": "10:00",
            "name": "Sam",
            "email": "sam@example.com",
        },
    )

    assert created.json()["type"] == "pod"
    assert [item["name"] for item in listed.json()] == ["Pod A"]
    assert auto.json()["space_name"] == "Pod A"
