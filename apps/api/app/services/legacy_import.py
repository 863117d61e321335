"""Import of registrations stored in the legacy document layout.

Older user documents embed their registrations in ``registered_events`` and
record coupon usage in ``couponsUsed`` either as bare coupon ids
(``[1, 2]``) or as objects (``[{"couponId": 1, "scannedAt": "..."}]``).
``normalize_coupon_usage`` reads both forms; ``backfill_legacy_registrations``
moves the documents into the registration and redemption tables once.
Running the backfill again only adds what is still missing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import CouponRedemption, Event, EventRegistration, FoodCoupon, User
from app.models.base import utcnow
from app.models.registration import RegistrationStatus
from app.services.registration_service import CouponUsage

logger = structlog.get_logger(__name__)


@dataclass
class BackfillReport:
    users_created: int = 0
    registrations_created: int = 0
    redemptions_created: int = 0
    skipped: list[str] = field(default_factory=list)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coupon_id(value: Any) -> int | None:
    # bool is an int subclass; true/false are never coupon ids
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def normalize_coupon_usage(raw: Iterable[Any] | None) -> list[CouponUsage]:
    """Return coupon usage in the canonical ``{couponId, scannedAt}`` shape.

    Unreadable entries are dropped. Duplicate coupon ids keep the first
    occurrence, matching the at-most-once rule for redemptions.
    """
    usages: list[CouponUsage] = []
    seen: set[int] = set()
    for entry in raw or []:
        if isinstance(entry, Mapping):
            coupon_id = _coupon_id(entry.get("couponId", entry.get("coupon_id")))
            scanned_at = _parse_datetime(entry.get("scannedAt", entry.get("scanned_at")))
        else:
            coupon_id = _coupon_id(entry)
            scanned_at = None

        if coupon_id is None:
            logger.warning("legacy_coupon_usage_dropped", entry=repr(entry))
            continue
        if coupon_id in seen:
            continue
        seen.add(coupon_id)
        usages.append(CouponUsage(coupon_id=coupon_id, scanned_at=scanned_at))
    return usages


def _parse_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _status(value: Any) -> RegistrationStatus:
    try:
        return RegistrationStatus(value or RegistrationStatus.CONFIRMED.value)
    except ValueError:
        return RegistrationStatus.CONFIRMED


def _get_or_create_user(db: Session, document: Mapping[str, Any], report: BackfillReport) -> User | None:
    external_id = document.get("external_id") or document.get("supabaseId")
    if not external_id:
        return None

    user = db.scalar(select(User).where(User.external_id == str(external_id)))
    if user is not None:
        return user

    email = document.get("email")
    if email and db.scalar(select(User).where(User.email == email)) is not None:
        # Same email under another subject; leave it for a person to merge
        return None

    user = User(
        external_id=str(external_id),
        email=email,
        full_name=document.get("fullName") or document.get("full_name"),
        avatar_url=document.get("avatar_url"),
        phone=document.get("phone"),
    )
    db.add(user)
    db.flush()
    report.users_created += 1
    return user


def _import_registration(
    db: Session, user: User, entry: Mapping[str, Any], report: BackfillReport, label: str
) -> None:
    event_id = _parse_uuid(entry.get("event_id", entry.get("event")))
    event = db.get(Event, event_id) if event_id else None
    if event is None:
        report.skipped.append(f"{label}: unknown event {entry.get('event')!r}")
        return

    registration = db.scalar(
        select(EventRegistration).where(
            EventRegistration.event_id == event.id,
            EventRegistration.user_id == user.id,
        )
    )
    if registration is None:
        status = _status(entry.get("status"))
        registration_date = _parse_datetime(entry.get("registration_date")) or utcnow()
        attendance_time = _parse_datetime(entry.get("attendance_time"))
        attended = bool(entry.get("attended")) and status == RegistrationStatus.CONFIRMED
        registration = EventRegistration(
            event_id=event.id,
            user_id=user.id,
            registration_date=registration_date,
            status=status,
            attended=attended,
            check_in_time=(attendance_time or registration_date) if attended else None,
            cancelled_at=utcnow() if status == RegistrationStatus.CANCELLED else None,
        )
        db.add(registration)
        db.flush()
        if status == RegistrationStatus.CONFIRMED:
            # Already admitted in the old store, so no capacity predicate here
            db.execute(
                update(Event)
                .where(Event.id == event.id)
                .values(registered_count=Event.registered_count + 1)
                .execution_options(synchronize_session=False)
            )
        report.registrations_created += 1

    known_coupons = set(
        db.scalars(select(FoodCoupon.coupon_id).where(FoodCoupon.event_id == event.id)).all()
    )
    redeemed = set(
        db.scalars(
            select(CouponRedemption.coupon_id).where(
                CouponRedemption.event_id == event.id,
                CouponRedemption.user_id == user.id,
            )
        ).all()
    )
    for usage in normalize_coupon_usage(entry.get("couponsUsed")):
        if usage.coupon_id in redeemed:
            continue
        if usage.coupon_id not in known_coupons:
            report.skipped.append(f"{label}: unknown coupon {usage.coupon_id} on event {event.id}")
            continue
        db.add(
            CouponRedemption(
                event_id=event.id,
                user_id=user.id,
                coupon_id=usage.coupon_id,
                scanned_at=usage.scanned_at
                or registration.check_in_time
                or registration.registration_date,
            )
        )
        redeemed.add(usage.coupon_id)
        report.redemptions_created += 1


def backfill_legacy_registrations(
    db: Session, documents: Iterable[Mapping[str, Any]]
) -> BackfillReport:
    report = BackfillReport()
    for index, document in enumerate(documents):
        label = str(document.get("external_id") or document.get("supabaseId") or f"#{index}")
        before = (report.users_created, report.registrations_created, report.redemptions_created)
        try:
            user = _get_or_create_user(db, document, report)
            if user is None:
                report.skipped.append(f"{label}: no usable identity")
                continue
            for entry in document.get("registered_events") or []:
                _import_registration(db, user, entry, report, label)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            (
                report.users_created,
                report.registrations_created,
                report.redemptions_created,
            ) = before
            report.skipped.append(f"{label}: {exc.orig}")
            logger.warning("legacy_document_skipped", document=label, error=str(exc.orig))

    logger.info(
        "legacy_backfill_finished",
        users_created=report.users_created,
        registrations_created=report.registrations_created,
        redemptions_created=report.redemptions_created,
        skipped=len(report.skipped),
    )
    return report
