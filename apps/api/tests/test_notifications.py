from __future__ import annotations

import uuid

from fastapi.testclient import TestClient
from sqlalchemy import delete, func, select

from app.models import UserNotification
from app.services.notification_service import repair_fanout
from tests.test_identity import auth_headers, organizer_with_event


def _notify(client: TestClient, headers: dict[str, str], event_id: str, title: str = "Doors open"):
    return client.post(
        "/v1/admin/notifications",
        json={"eventId": event_id, "title": title, "message": "Hall B, bring your QR code"},
        headers=headers,
    )


def test_notification_reaches_confirmed_registrations_only(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    confirmed = auth_headers("sub-confirmed")
    cancelled = auth_headers("sub-cancelled")
    client.post(f"/v1/events/{event['id']}/register", headers=confirmed)
    client.post(f"/v1/events/{event['id']}/register", headers=cancelled)
    client.post(f"/v1/events/{event['id']}/cancel", headers=cancelled)

    resp = _notify(client, organizer, event["id"])
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["deliveryCount"] == 1
    assert data["notification"]["title"] == "Doors open"
    assert data["notification"]["isInApp"] is True

    inbox = client.get("/v1/me/notifications", headers=confirmed).json()["data"]
    assert [item["title"] for item in inbox] == ["Doors open"]
    assert inbox[0]["eventName"] == event["name"]
    assert inbox[0]["isRead"] is False

    assert client.get("/v1/me/notifications", headers=cancelled).json()["data"] == []


def test_fan_out_is_not_retroactive_and_repair_is_idempotent(client: TestClient, db_session):
    organizer, _, event = organizer_with_event(client)
    early = auth_headers("sub-early")
    client.post(f"/v1/events/{event['id']}/register", headers=early)

    notification_id = _notify(client, organizer, event["id"]).json()["data"]["notification"]["id"]

    late = auth_headers("sub-late")
    client.post(f"/v1/events/{event['id']}/register", headers=late)
    assert client.get("/v1/me/notifications", headers=late).json()["data"] == []

    # Simulate a fan-out that died before writing anything
    db_session.execute(delete(UserNotification))
    db_session.commit()

    assert repair_fanout(db_session, uuid.UUID(notification_id)) == 1
    assert repair_fanout(db_session, uuid.UUID(notification_id)) == 0

    deliveries = db_session.scalar(select(func.count()).select_from(UserNotification))
    assert deliveries == 1
    assert client.get("/v1/me/notifications", headers=late).json()["data"] == []
    assert len(client.get("/v1/me/notifications", headers=early).json()["data"]) == 1


def test_mark_notification_read(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    attendee = auth_headers("sub-a")
    client.post(f"/v1/events/{event['id']}/register", headers=attendee)
    notification_id = _notify(client, organizer, event["id"]).json()["data"]["notification"]["id"]

    resp = client.post(f"/v1/me/notifications/{notification_id}/read", headers=attendee)
    assert resp.status_code == 200
    assert resp.json()["data"]["isRead"] is True
    assert resp.json()["data"]["readAt"]

    stranger = client.post(
        f"/v1/me/notifications/{notification_id}/read", headers=auth_headers("sub-stranger")
    )
    assert stranger.status_code == 404
    assert stranger.json()["code"] == "NOTIFICATION_NOT_FOUND"


def test_notification_requires_event_access(client: TestClient):
    _, _, event = organizer_with_event(client)
    resp = _notify(client, auth_headers("sub-outsider"), event["id"])
    assert resp.status_code == 404
    assert resp.json()["code"] == "EVENT_NOT_FOUND"
