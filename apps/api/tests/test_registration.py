from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
import threading
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from app.main import app
from app.models import Event, EventRegistration, EventSession, User
from app.models.registration import RegistrationStatus
from app.services.exceptions import RegistrationRejectedError
from app.services import registration_service
from app.services.registration_service import register_for_event, register_for_session
from tests.test_identity import auth_headers, organizer_with_event, user_id_for


def _register(client: TestClient, event_id: str, headers: dict[str, str]):
    return client.post(f"/v1/events/{event_id}/register", headers=headers)


def _create_session(client: TestClient, headers: dict[str, str], event: dict, **overrides):
    payload = {
        "eventId": event["id"],
        "name": "Workshop",
        "startTime": event["startTime"],
        "endTime": event["endTime"],
    }
    payload.update(overrides)
    resp = client.post("/v1/admin/sessions", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _confirmed_count(db_session, event_id: str) -> int:
    return db_session.scalar(
        select(func.count())
        .select_from(EventRegistration)
        .where(
            EventRegistration.event_id == uuid.UUID(event_id),
            EventRegistration.status == RegistrationStatus.CONFIRMED,
        )
    )


def test_register_returns_confirmed_registration(client: TestClient):
    _, _, event = organizer_with_event(client, maxCapacity=10)
    attendee = auth_headers("sub-attendee")

    resp = _register(client, event["id"], attendee)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Successfully registered for event"
    assert body["data"]["eventId"] == event["id"]
    assert body["data"]["status"] == "confirmed"
    assert body["data"]["registrationDate"]

    detail = client.get(f"/v1/events/{event['id']}", headers=attendee).json()["data"]
    assert detail["registeredCount"] == 1
    assert detail["remainingCapacity"] == 9


def test_repeat_registration_is_rejected_without_second_row(client: TestClient, db_session):
    _, _, event = organizer_with_event(client)
    attendee = auth_headers("sub-attendee")

    assert _register(client, event["id"], attendee).status_code == 200
    again = _register(client, event["id"], attendee)
    assert again.status_code == 400
    assert again.json()["code"] == "ALREADY_REGISTERED"

    assert _confirmed_count(db_session, event["id"]) == 1


def test_unknown_event_is_not_found(client: TestClient):
    resp = _register(client, str(uuid.uuid4()), auth_headers("sub-attendee"))
    assert resp.status_code == 404
    assert resp.json()["code"] == "EVENT_NOT_FOUND"


def test_past_deadline_rejects_regardless_of_capacity(client: TestClient, db_session):
    deadline = datetime.now(timezone.utc) - timedelta(minutes=1)
    _, _, open_event = organizer_with_event(
        client, registrationDeadline=deadline.isoformat(), maxCapacity=100
    )
    _, _, full_event = organizer_with_event(
        client,
        email="org2@example.com",
        registrationDeadline=deadline.isoformat(),
        maxCapacity=1,
    )
    attendee = auth_headers("sub-attendee")

    for event in (open_event, full_event):
        resp = _register(client, event["id"], attendee)
        assert resp.status_code == 400
        assert resp.json()["code"] == "REGISTRATION_DEADLINE_PASSED"
        assert _confirmed_count(db_session, event["id"]) == 0


def test_full_event_rejects_next_registration(client: TestClient):
    _, _, event = organizer_with_event(client, maxCapacity=1)

    assert _register(client, event["id"], auth_headers("sub-a")).status_code == 200
    resp = _register(client, event["id"], auth_headers("sub-b"))
    assert resp.status_code == 400
    assert resp.json()["code"] == "EVENT_FULL"


def test_concurrent_registrations_never_exceed_capacity(client: TestClient, db_session):
    capacity = 3
    _, _, event = organizer_with_event(client, maxCapacity=capacity)

    attendees = [auth_headers(f"sub-racer-{i}") for i in range(8)]
    for headers in attendees:
        # Create users up front so the race is only about admission
        user_id_for(client, headers)

    barrier = threading.Barrier(len(attendees))

    def _register_call(headers: dict[str, str]):
        with TestClient(app) as local_client:
            barrier.wait()
            return local_client.post(f"/v1/events/{event['id']}/register", headers=headers)

    with ThreadPoolExecutor(max_workers=len(attendees)) as pool:
        results = list(pool.map(_register_call, attendees))

    statuses = sorted(r.status_code for r in results)
    assert statuses.count(200) == capacity
    assert all(r.json()["code"] == "EVENT_FULL" for r in results if r.status_code != 200)

    assert _confirmed_count(db_session, event["id"]) == capacity
    stored = db_session.get(Event, uuid.UUID(event["id"]))
    assert stored.registered_count == capacity


def test_concurrent_duplicate_registration_creates_one_row(client: TestClient, db_session):
    _, _, event = organizer_with_event(client)
    headers = auth_headers("sub-double-tap")
    user_id_for(client, headers)

    barrier = threading.Barrier(2)

    def _register_call(_):
        with TestClient(app) as local_client:
            barrier.wait()
            return local_client.post(f"/v1/events/{event['id']}/register", headers=headers)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(_register_call, range(2)))

    assert sorted(r.status_code for r in results) == [200, 400]
    assert _confirmed_count(db_session, event["id"]) == 1
    stored = db_session.get(Event, uuid.UUID(event["id"]))
    assert stored.registered_count == 1


def test_registration_reads_back_identically_from_both_views(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    attendee = auth_headers("sub-attendee", email="attendee@example.com")

    created = _register(client, event["id"], attendee).json()["data"]

    mine = client.get("/v1/me/registrations", headers=attendee).json()["data"]
    assert len(mine["registeredEvents"]) == 1
    user_side = mine["registeredEvents"][0]

    attendees = client.get(f"/v1/admin/events/{event['id']}/attendees", headers=organizer)
    assert attendees.status_code == 200
    event_side = attendees.json()["data"]["registeredUsers"][0]

    assert user_side["eventId"] == event["id"]
    assert user_side["status"] == event_side["status"] == created["status"]
    assert user_side["registrationDate"] == event_side["registrationDate"] == created["registrationDate"]
    assert user_side["attended"] is event_side["attended"] is False
    assert event_side["email"] == "attendee@example.com"


def test_cancel_releases_capacity_and_reregistration_reuses_row(client: TestClient, db_session):
    _, _, event = organizer_with_event(client, maxCapacity=1)
    first = auth_headers("sub-first")
    second = auth_headers("sub-second")

    assert _register(client, event["id"], first).status_code == 200
    assert _register(client, event["id"], second).json()["code"] == "EVENT_FULL"

    cancelled = client.post(f"/v1/events/{event['id']}/cancel", headers=first)
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "cancelled"

    assert _register(client, event["id"], second).status_code == 200
    assert _register(client, event["id"], first).json()["code"] == "EVENT_FULL"

    client.post(f"/v1/events/{event['id']}/cancel", headers=second)
    assert _register(client, event["id"], first).status_code == 200

    first_user = db_session.scalar(select(User).where(User.external_id == "sub-first"))
    rows = db_session.scalar(
        select(func.count())
        .select_from(EventRegistration)
        .where(EventRegistration.user_id == first_user.id)
    )
    assert rows == 1


def test_cancel_without_registration_is_not_found(client: TestClient):
    _, _, event = organizer_with_event(client)
    resp = client.post(f"/v1/events/{event['id']}/cancel", headers=auth_headers("sub-nobody"))
    assert resp.status_code == 404
    assert resp.json()["code"] == "REGISTRATION_NOT_FOUND"


def test_session_registration_has_its_own_capacity(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    session = _create_session(client, organizer, event, maxCapacity=1)

    first = client.post(
        "/v1/sessions/register",
        json={"eventId": event["id"], "sessionId": session["id"]},
        headers=auth_headers("sub-a"),
    )
    assert first.status_code == 200
    assert first.json()["data"]["sessionId"] == session["id"]
    assert first.json()["data"]["status"] == "confirmed"

    second = client.post(
        "/v1/sessions/register",
        json={"eventId": event["id"], "sessionId": session["id"]},
        headers=auth_headers("sub-b"),
    )
    assert second.status_code == 400
    assert second.json()["code"] == "SESSION_FULL"

    repeat = client.post(
        "/v1/sessions/register",
        json={"event_id": event["id"], "session_id": session["id"]},
        headers=auth_headers("sub-a"),
    )
    assert repeat.json()["code"] == "ALREADY_REGISTERED"

    mine = client.get("/v1/me/registrations", headers=auth_headers("sub-a")).json()["data"]
    assert [s["sessionId"] for s in mine["registeredSessions"]] == [session["id"]]
    assert mine["registeredEvents"] == []


def test_session_must_belong_to_event(client: TestClient):
    organizer, organization_id, event = organizer_with_event(client)
    _, _, other_event = organizer_with_event(client, email="org2@example.com")
    session = _create_session(client, organizer, event)

    resp = client.post(
        "/v1/sessions/register",
        json={"eventId": other_event["id"], "sessionId": session["id"]},
        headers=auth_headers("sub-a"),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "SESSION_EVENT_MISMATCH"


def test_session_cancel_releases_seat(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    session = _create_session(client, organizer, event, maxCapacity=1)
    body = {"eventId": event["id"], "sessionId": session["id"]}

    assert client.post("/v1/sessions/register", json=body, headers=auth_headers("sub-a")).status_code == 200
    cancel = client.post(f"/v1/sessions/{session['id']}/cancel", headers=auth_headers("sub-a"))
    assert cancel.status_code == 200
    assert cancel.json()["data"]["status"] == "cancelled"
    assert client.post("/v1/sessions/register", json=body, headers=auth_headers("sub-b")).status_code == 200


def test_session_registration_can_require_event_registration(client: TestClient, db_session):
    organizer, _, event = organizer_with_event(client)
    session = _create_session(client, organizer, event)
    user_id_for(client, auth_headers("sub-a"))
    user = db_session.scalar(select(User).where(User.external_id == "sub-a"))
    event_id = uuid.UUID(event["id"])
    session_id = uuid.UUID(session["id"])

    with pytest.raises(RegistrationRejectedError) as excinfo:
        register_for_session(db_session, user, event_id, session_id, require_event_registration=True)
    assert excinfo.value.code == "NOT_REGISTERED"

    register_for_event(db_session, user, event_id)
    result = register_for_session(
        db_session, user, event_id, session_id, require_event_registration=True
    )
    assert result.status == RegistrationStatus.CONFIRMED


def test_event_deadline_closes_session_registration(client: TestClient, db_session):
    deadline = datetime.now(timezone.utc) - timedelta(minutes=1)
    organizer, _, event = organizer_with_event(client, registrationDeadline=deadline.isoformat())
    session = _create_session(client, organizer, event, maxCapacity=10)

    resp = client.post(
        "/v1/sessions/register",
        json={"eventId": event["id"], "sessionId": session["id"]},
        headers=auth_headers("sub-a"),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "REGISTRATION_DEADLINE_PASSED"

    stored = db_session.get(EventSession, uuid.UUID(session["id"]))
    assert stored.registered_count == 0


class _RecordingLogger:
    def __init__(self):
        self.events = []

    def info(self, event, **fields):
        self.events.append((event, fields))

    warning = error = info


def test_concurrent_duplicate_session_registration_logs_rejection(client: TestClient, monkeypatch):
    organizer, _, event = organizer_with_event(client)
    session = _create_session(client, organizer, event)
    headers = auth_headers("sub-double-tap")
    user_id_for(client, headers)

    recorder = _RecordingLogger()
    monkeypatch.setattr(registration_service, "logger", recorder)
    body = {"eventId": event["id"], "sessionId": session["id"]}
    barrier = threading.Barrier(2)

    def _register_call(_):
        with TestClient(app) as local_client:
            barrier.wait()
            return local_client.post("/v1/sessions/register", json=body, headers=headers)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(_register_call, range(2)))

    assert sorted(r.status_code for r in results) == [200, 400]
    rejected = [fields for name, fields in recorder.events if name == "session_registration_rejected"]
    assert len(rejected) == 1
    assert rejected[0]["code"] == "ALREADY_REGISTERED"
    assert rejected[0]["session_id"] == session["id"]
