from __future__ import annotations

import uuid

from fastapi.testclient import TestClient
from sqlalchemy import update

from app.models import Event, EventRegistration
from app.services.consistency import _reconcile, reconcile_registration_counters
from tests.test_identity import auth_headers, organizer_with_event


def test_counter_drift_is_reconciled(client: TestClient, db_session):
    _, _, event = organizer_with_event(client, maxCapacity=10)
    for i in range(2):
        client.post(f"/v1/events/{event['id']}/register", headers=auth_headers(f"sub-{i}"))

    event_id = uuid.UUID(event["id"])
    db_session.execute(update(Event).where(Event.id == event_id).values(registered_count=7))
    db_session.commit()

    corrections = reconcile_registration_counters(db_session, event_id)
    assert len(corrections) == 1
    correction = corrections[0]
    assert (correction.entity, correction.recorded, correction.actual) == ("event", 7, 2)
    assert correction.applied is True

    detail = client.get(f"/v1/events/{event['id']}", headers=auth_headers("sub-0")).json()["data"]
    assert detail["registeredCount"] == 2
    assert detail["remainingCapacity"] == 8

    assert reconcile_registration_counters(db_session) == []


def test_reconcile_without_drift_changes_nothing(client: TestClient, db_session):
    _, _, event = organizer_with_event(client)
    client.post(f"/v1/events/{event['id']}/register", headers=auth_headers("sub-a"))
    client.post(f"/v1/events/{event['id']}/cancel", headers=auth_headers("sub-a"))

    assert reconcile_registration_counters(db_session, uuid.UUID(event["id"])) == []


def test_correction_is_not_applied_when_counter_moved(client: TestClient, db_session):
    _, _, event = organizer_with_event(client)
    client.post(f"/v1/events/{event['id']}/register", headers=auth_headers("sub-a"))
    event_id = uuid.UUID(event["id"])

    # Counter read as 5, but it reads 1 by the time the correction runs
    corrections = _reconcile(
        db_session, "event", Event, EventRegistration, EventRegistration.event_id, [(event_id, 5)]
    )
    assert [(c.recorded, c.actual, c.applied) for c in corrections] == [(5, 1, False)]

    stored = db_session.get(Event, event_id)
    db_session.refresh(stored)
    assert stored.registered_count == 1
