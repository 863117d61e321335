from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
import threading
import uuid

from fastapi.testclient import TestClient
from sqlalchemy import func, select

from app.main import app
from app.models import CouponRedemption, Event, EventRegistration, User
from app.services.legacy_import import backfill_legacy_registrations, normalize_coupon_usage
from tests.test_identity import auth_headers, organizer_with_event, user_id_for


def _add_coupon(client: TestClient, headers: dict[str, str], event_id: str, name: str = "Lunch") -> dict:
    resp = client.post(
        "/v1/admin/coupons",
        json={"eventId": event_id, "name": name, "quantity": 100},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _redeem(client: TestClient, headers: dict[str, str], event_id: str, identifier: str, coupon_id: int):
    return client.post(
        "/v1/admin/coupon/redeem",
        json={"eventId": event_id, "userIdentifier": identifier, "couponId": coupon_id},
        headers=headers,
    )


def test_coupon_ids_are_assigned_per_event(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    lunch = _add_coupon(client, organizer, event["id"], "Lunch")
    dinner = _add_coupon(client, organizer, event["id"], "Dinner")
    assert (lunch["couponId"], dinner["couponId"]) == (1, 2)
    assert lunch["name"] == "Lunch"


def test_lunch_scenario_redeems_at_most_once(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    lunch = _add_coupon(client, organizer, event["id"])
    attendee = auth_headers("sub-a")
    user_id_for(client, attendee)

    not_registered = _redeem(client, organizer, event["id"], "sub-a", lunch["couponId"])
    assert not_registered.status_code == 400
    assert not_registered.json()["code"] == "NOT_REGISTERED"

    client.post(f"/v1/events/{event['id']}/register", headers=attendee)

    first = _redeem(client, organizer, event["id"], "sub-a", lunch["couponId"])
    assert first.status_code == 200
    assert first.json()["data"]["couponName"] == "Lunch"
    assert first.json()["data"]["scannedAt"]

    second = _redeem(client, organizer, event["id"], "sub-a", lunch["couponId"])
    assert second.status_code == 409
    body = second.json()
    assert body["success"] is False
    assert body["code"] == "COUPON_ALREADY_REDEEMED"
    assert body["details"]["scannedAt"]


def test_unknown_coupon_is_not_found_for_anyone(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    _add_coupon(client, organizer, event["id"])
    attendee = auth_headers("sub-a")
    client.post(f"/v1/events/{event['id']}/register", headers=attendee)

    for identifier in ("sub-a", "sub-ghost"):
        resp = _redeem(client, organizer, event["id"], identifier, 42)
        assert resp.status_code == 404
        assert resp.json()["code"] == "COUPON_NOT_FOUND"


def test_redemption_shows_in_both_views(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    lunch = _add_coupon(client, organizer, event["id"], "Lunch")
    _add_coupon(client, organizer, event["id"], "Dinner")
    attendee = auth_headers("sub-a")
    client.post(f"/v1/events/{event['id']}/register", headers=attendee)
    redeemed = _redeem(client, organizer, event["id"], "sub-a", lunch["couponId"]).json()["data"]

    mine = client.get("/v1/me/registrations", headers=attendee).json()["data"]
    assert mine["registeredEvents"][0]["couponsUsed"] == [
        {"couponId": lunch["couponId"], "scannedAt": redeemed["scannedAt"]}
    ]

    attendees = client.get(f"/v1/admin/events/{event['id']}/attendees", headers=organizer)
    coupons = attendees.json()["data"]["registeredUsers"][0]["coupons"]
    assert [(c["couponName"], c["used"]) for c in coupons] == [("Lunch", True), ("Dinner", False)]
    assert coupons[0]["scannedAt"] == redeemed["scannedAt"]
    assert coupons[1]["scannedAt"] is None


def test_concurrent_redemptions_record_one_row(client: TestClient, db_session):
    organizer, _, event = organizer_with_event(client)
    lunch = _add_coupon(client, organizer, event["id"])
    client.post(f"/v1/events/{event['id']}/register", headers=auth_headers("sub-a"))

    barrier = threading.Barrier(3)

    def _scan(_):
        with TestClient(app) as local_client:
            barrier.wait()
            return _redeem(local_client, organizer, event["id"], "sub-a", lunch["couponId"])

    with ThreadPoolExecutor(max_workers=3) as pool:
        results = list(pool.map(_scan, range(3)))

    assert sorted(r.status_code for r in results) == [200, 409, 409]
    count = db_session.scalar(select(func.count()).select_from(CouponRedemption))
    assert count == 1


def test_normalize_coupon_usage_reads_both_shapes():
    scanned = "2024-05-01T12:30:00Z"
    usages = normalize_coupon_usage(
        [1, {"couponId": 2, "scannedAt": scanned}, {"couponId": 3}, 2, "4", True, {"couponId": None}]
    )

    assert [u.coupon_id for u in usages] == [1, 2, 3, 4]
    assert usages[0].scanned_at is None
    assert usages[1].scanned_at == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    assert usages[2].scanned_at is None
    assert normalize_coupon_usage(None) == []


def test_legacy_backfill_is_idempotent(client: TestClient, db_session):
    organizer, _, event = organizer_with_event(client)
    _add_coupon(client, organizer, event["id"], "Lunch")
    _add_coupon(client, organizer, event["id"], "Dinner")

    documents = [
        {
            "supabaseId": "legacy-1",
            "email": "legacy1@example.com",
            "fullName": "Legacy One",
            "registered_events": [
                {
                    "event": event["id"],
                    "registration_date": "2024-04-01T09:00:00Z",
                    "status": "confirmed",
                    "attended": True,
                    "attendance_time": "2024-04-02T09:00:00Z",
                    "couponsUsed": [1, {"couponId": 2, "scannedAt": "2024-04-02T13:00:00Z"}, 7],
                },
                {"event": "not-a-uuid", "couponsUsed": []},
            ],
        }
    ]

    report = backfill_legacy_registrations(db_session, documents)
    assert report.users_created == 1
    assert report.registrations_created == 1
    assert report.redemptions_created == 2
    assert len(report.skipped) == 2

    again = backfill_legacy_registrations(db_session, documents)
    assert (again.users_created, again.registrations_created, again.redemptions_created) == (0, 0, 0)

    user = db_session.scalar(select(User).where(User.external_id == "legacy-1"))
    registration = db_session.scalar(
        select(EventRegistration).where(EventRegistration.user_id == user.id)
    )
    assert registration.attended is True
    redemptions = db_session.scalars(
        select(CouponRedemption)
        .where(CouponRedemption.user_id == user.id)
        .order_by(CouponRedemption.coupon_id)
    ).all()
    assert [r.coupon_id for r in redemptions] == [1, 2]
    # No timestamp in the bare form; falls back to the check-in time
    assert redemptions[0].scanned_at == datetime(2024, 4, 2, 9, 0, tzinfo=timezone.utc)
    assert redemptions[1].scanned_at == datetime(2024, 4, 2, 13, 0, tzinfo=timezone.utc)

    stored = db_session.get(Event, uuid.UUID(event["id"]))
    db_session.refresh(stored)
    assert stored.registered_count == 1


def test_coupon_id_outside_column_range_is_not_found(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    _add_coupon(client, organizer, event["id"])
    client.post(f"/v1/events/{event['id']}/register", headers=auth_headers("sub-a"))

    for coupon_id in (2**64, 2**31, 0, -1):
        resp = _redeem(client, organizer, event["id"], "sub-a", coupon_id)
        assert resp.status_code == 404, coupon_id
        assert resp.json()["code"] == "COUPON_NOT_FOUND"


def test_event_coupons_are_listed_in_id_order(client: TestClient):
    organizer, _, event = organizer_with_event(client)
    _add_coupon(client, organizer, event["id"], "Lunch")
    _add_coupon(client, organizer, event["id"], "Dinner")
    attendee = auth_headers("sub-a")

    resp = client.get(f"/v1/events/{event['id']}/coupons", headers=attendee)
    assert resp.status_code == 200
    assert [(c["couponId"], c["name"]) for c in resp.json()["data"]] == [(1, "Lunch"), (2, "Dinner")]

    missing = client.get(f"/v1/events/{uuid.uuid4()}/coupons", headers=attendee)
    assert missing.status_code == 404
    assert missing.json()["code"] == "EVENT_NOT_FOUND"
