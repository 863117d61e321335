from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models import (
    CouponRedemption,
    Event,
    EventRegistration,
    EventSession,
    FoodCoupon,
    SessionRegistration,
    User,
)
from app.models.base import utcnow
from app.models.registration import RegistrationStatus
from app.services.authorization import Action, require_event
from app.services.error_codes import ErrorCode
from app.services.exceptions import (
    ConflictError,
    NotFoundError,
    RegistrationRejectedError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    event_id: uuid.UUID
    registration_date: datetime
    status: RegistrationStatus
    session_id: uuid.UUID | None = None


@dataclass(frozen=True)
class CouponUsage:
    coupon_id: int
    scanned_at: datetime | None


@dataclass(frozen=True)
class UserEventRegistration:
    event_id: uuid.UUID
    event_name: str
    registration_date: datetime
    status: RegistrationStatus
    attended: bool
    attendance_time: datetime | None
    coupons_used: list[CouponUsage] = field(default_factory=list)


@dataclass(frozen=True)
class UserSessionRegistration:
    session_id: uuid.UUID
    event_id: uuid.UUID
    session_name: str
    registration_date: datetime
    status: RegistrationStatus


@dataclass(frozen=True)
class UserRegistrations:
    events: list[UserEventRegistration]
    sessions: list[UserSessionRegistration]


@dataclass(frozen=True)
class CouponStatus:
    coupon_id: int
    coupon_name: str
    used: bool
    scanned_at: datetime | None


@dataclass(frozen=True)
class Attendee:
    user: User
    registration: EventRegistration
    coupons: list[CouponStatus]


@dataclass(frozen=True)
class EventAttendees:
    event: Event
    attendees: list[Attendee]


def _check_deadline(event: Event) -> None:
    deadline = event.registration_deadline
    if deadline is not None and deadline <= utcnow():
        raise RegistrationRejectedError(
            ErrorCode.REGISTRATION_DEADLINE_PASSED.value, "registration deadline has passed"
        )


def _admit(db: Session, model: Any, entity_id: uuid.UUID, code: ErrorCode, message: str) -> None:
    # Capacity check and increment in one statement; a concurrent admission
    # re-evaluates the predicate after the first one commits.
    result = db.execute(
        update(model)
        .where(
            model.id == entity_id,
            or_(model.max_capacity.is_(None), model.registered_count < model.max_capacity),
        )
        .values(registered_count=model.registered_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise RegistrationRejectedError(code.value, message)


def _release(db: Session, model: Any, entity_id: uuid.UUID) -> None:
    db.execute(
        update(model)
        .where(model.id == entity_id, model.registered_count > 0)
        .values(registered_count=model.registered_count - 1)
        .execution_options(synchronize_session=False)
    )


def _reactivate(db: Session, model: Any, registration_id: uuid.UUID, now: datetime) -> None:
    result = db.execute(
        update(model)
        .where(model.id == registration_id, model.status == RegistrationStatus.CANCELLED)
        .values(status=RegistrationStatus.CONFIRMED, registration_date=now, cancelled_at=None)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise RegistrationRejectedError(
            ErrorCode.ALREADY_REGISTERED.value, "already registered"
        )


def confirmed_event_registration(
    db: Session, event_id: uuid.UUID, user_id: uuid.UUID
) -> EventRegistration | None:
    return db.scalar(
        select(EventRegistration).where(
            EventRegistration.event_id == event_id,
            EventRegistration.user_id == user_id,
            EventRegistration.status == RegistrationStatus.CONFIRMED,
        )
    )


def register_for_event(db: Session, user: User, event_id: uuid.UUID) -> RegistrationResult:
    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")

    now = utcnow()
    try:
        _check_deadline(event)

        existing = db.scalar(
            select(EventRegistration).where(
                EventRegistration.event_id == event.id,
                EventRegistration.user_id == user.id,
            )
        )
        if existing and existing.status != RegistrationStatus.CANCELLED:
            raise RegistrationRejectedError(
                ErrorCode.ALREADY_REGISTERED.value, "already registered for this event"
            )

        _admit(db, Event, event.id, ErrorCode.EVENT_FULL, "event has reached maximum capacity")

        if existing:
            _reactivate(db, EventRegistration, existing.id, now)
        else:
            db.add(
                EventRegistration(
                    event_id=event.id,
                    user_id=user.id,
                    registration_date=now,
                    status=RegistrationStatus.CONFIRMED,
                    attended=False,
                )
            )
            db.flush()
        db.commit()
    except IntegrityError as exc:
        # Lost a race against the same user's other request; the rollback
        # also undoes the capacity increment.
        db.rollback()
        logger.info(
            "event_registration_rejected",
            event_id=str(event_id),
            user_id=str(user.id),
            code=ErrorCode.ALREADY_REGISTERED.value,
        )
        raise RegistrationRejectedError(
            ErrorCode.ALREADY_REGISTERED.value, "already registered for this event"
        ) from exc
    except RegistrationRejectedError as exc:
        db.rollback()
        logger.info(
            "event_registration_rejected",
            event_id=str(event_id),
            user_id=str(user.id),
            code=exc.code,
        )
        raise

    logger.info("event_registration_created", event_id=str(event_id), user_id=str(user.id))
    return RegistrationResult(
        event_id=event_id, registration_date=now, status=RegistrationStatus.CONFIRMED
    )


def register_for_session(
    db: Session,
    user: User,
    event_id: uuid.UUID,
    session_id: uuid.UUID,
    require_event_registration: bool | None = None,
) -> RegistrationResult:
    if require_event_registration is None:
        require_event_registration = settings.session_requires_event_registration

    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    session = db.get(EventSession, session_id)
    if not session:
        raise NotFoundError(ErrorCode.SESSION_NOT_FOUND.value, "session not found")
    if session.event_id != event.id:
        raise ValidationError(
            ErrorCode.SESSION_EVENT_MISMATCH.value,
            "session does not belong to the specified event",
        )

    now = utcnow()
    try:
        _check_deadline(event)

        if require_event_registration and not confirmed_event_registration(db, event.id, user.id):
            raise RegistrationRejectedError(
                ErrorCode.NOT_REGISTERED.value,
                "register for the event before registering for its sessions",
            )

        existing = db.scalar(
            select(SessionRegistration).where(
                SessionRegistration.session_id == session.id,
                SessionRegistration.user_id == user.id,
            )
        )
        if existing and existing.status != RegistrationStatus.CANCELLED:
            raise RegistrationRejectedError(
                ErrorCode.ALREADY_REGISTERED.value, "already registered for this session"
            )

        _admit(
            db,
            EventSession,
            session.id,
            ErrorCode.SESSION_FULL,
            "session has reached maximum capacity",
        )

        if existing:
            _reactivate(db, SessionRegistration, existing.id, now)
        else:
            db.add(
                SessionRegistration(
                    session_id=session.id,
                    event_id=event.id,
                    user_id=user.id,
                    registration_date=now,
                    status=RegistrationStatus.CONFIRMED,
                )
            )
            db.flush()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info(
            "session_registration_rejected",
            session_id=str(session_id),
            user_id=str(user.id),
            code=ErrorCode.ALREADY_REGISTERED.value,
        )
        raise RegistrationRejectedError(
            ErrorCode.ALREADY_REGISTERED.value, "already registered for this session"
        ) from exc
    except RegistrationRejectedError as exc:
        db.rollback()
        logger.info(
            "session_registration_rejected",
            session_id=str(session_id),
            user_id=str(user.id),
            code=exc.code,
        )
        raise

    logger.info(
        "session_registration_created",
        event_id=str(event_id),
        session_id=str(session_id),
        user_id=str(user.id),
    )
    return RegistrationResult(
        event_id=event_id,
        session_id=session_id,
        registration_date=now,
        status=RegistrationStatus.CONFIRMED,
    )


def cancel_event_registration(db: Session, user: User, event_id: uuid.UUID) -> RegistrationResult:
    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")

    registration = db.scalar(
        select(EventRegistration).where(
            EventRegistration.event_id == event.id,
            EventRegistration.user_id == user.id,
        )
    )
    if not registration or registration.status == RegistrationStatus.CANCELLED:
        raise NotFoundError(ErrorCode.REGISTRATION_NOT_FOUND.value, "not currently registered")
    if registration.attended:
        raise ConflictError(
            ErrorCode.ALREADY_CHECKED_IN.value, "cannot cancel after checking in"
        )

    previous_status = registration.status
    registration_date = registration.registration_date
    now = utcnow()
    result = db.execute(
        update(EventRegistration)
        .where(
            EventRegistration.id == registration.id,
            EventRegistration.status == previous_status,
            EventRegistration.attended.is_(False),
        )
        .values(status=RegistrationStatus.CANCELLED, cancelled_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise ConflictError(
            ErrorCode.REGISTRATION_NOT_FOUND.value, "registration changed, retry the request"
        )
    if previous_status == RegistrationStatus.CONFIRMED:
        _release(db, Event, event.id)
    db.commit()

    logger.info("event_registration_cancelled", event_id=str(event_id), user_id=str(user.id))
    return RegistrationResult(
        event_id=event_id,
        registration_date=registration_date,
        status=RegistrationStatus.CANCELLED,
    )


def cancel_session_registration(
    db: Session, user: User, session_id: uuid.UUID
) -> RegistrationResult:
    session = db.get(EventSession, session_id)
    if not session:
        raise NotFoundError(ErrorCode.SESSION_NOT_FOUND.value, "session not found")

    registration = db.scalar(
        select(SessionRegistration).where(
            SessionRegistration.session_id == session.id,
            SessionRegistration.user_id == user.id,
        )
    )
    if not registration or registration.status == RegistrationStatus.CANCELLED:
        raise NotFoundError(ErrorCode.REGISTRATION_NOT_FOUND.value, "not currently registered")

    previous_status = registration.status
    registration_date = registration.registration_date
    result = db.execute(
        update(SessionRegistration)
        .where(
            SessionRegistration.id == registration.id,
            SessionRegistration.status == previous_status,
        )
        .values(status=RegistrationStatus.CANCELLED, cancelled_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise ConflictError(
            ErrorCode.REGISTRATION_NOT_FOUND.value, "registration changed, retry the request"
        )
    if previous_status == RegistrationStatus.CONFIRMED:
        _release(db, EventSession, session.id)
    db.commit()

    return RegistrationResult(
        event_id=session.event_id,
        session_id=session.id,
        registration_date=registration_date,
        status=RegistrationStatus.CANCELLED,
    )


def list_user_registrations(db: Session, user: User) -> UserRegistrations:
    event_rows = db.execute(
        select(EventRegistration, Event.name)
        .join(Event, Event.id == EventRegistration.event_id)
        .where(EventRegistration.user_id == user.id)
        .order_by(EventRegistration.registration_date)
    ).all()

    redemptions = db.scalars(
        select(CouponRedemption)
        .where(CouponRedemption.user_id == user.id)
        .order_by(CouponRedemption.scanned_at)
    ).all()
    used_by_event: dict[uuid.UUID, list[CouponUsage]] = {}
    for redemption in redemptions:
        used_by_event.setdefault(redemption.event_id, []).append(
            CouponUsage(coupon_id=redemption.coupon_id, scanned_at=redemption.scanned_at)
        )

    events = [
        UserEventRegistration(
            event_id=registration.event_id,
            event_name=event_name,
            registration_date=registration.registration_date,
            status=registration.status,
            attended=registration.attended,
            attendance_time=registration.check_in_time,
            coupons_used=used_by_event.get(registration.event_id, []),
        )
        for registration, event_name in event_rows
    ]

    session_rows = db.execute(
        select(SessionRegistration, EventSession.name)
        .join(EventSession, EventSession.id == SessionRegistration.session_id)
        .where(SessionRegistration.user_id == user.id)
        .order_by(SessionRegistration.registration_date)
    ).all()
    sessions = [
        UserSessionRegistration(
            session_id=registration.session_id,
            event_id=registration.event_id,
            session_name=session_name,
            registration_date=registration.registration_date,
            status=registration.status,
        )
        for registration, session_name in session_rows
    ]
    return UserRegistrations(events=events, sessions=sessions)


def list_event_attendees(db: Session, actor: User, event_id: uuid.UUID) -> EventAttendees:
    event = require_event(db, actor, event_id, Action.VIEW_ATTENDEES)

    coupons = db.scalars(
        select(FoodCoupon).where(FoodCoupon.event_id == event.id).order_by(FoodCoupon.coupon_id)
    ).all()
    redemptions = db.scalars(
        select(CouponRedemption).where(CouponRedemption.event_id == event.id)
    ).all()
    scanned: dict[tuple[uuid.UUID, int], datetime] = {
        (r.user_id, r.coupon_id): r.scanned_at for r in redemptions
    }

    rows = db.execute(
        select(EventRegistration, User)
        .join(User, User.id == EventRegistration.user_id)
        .where(EventRegistration.event_id == event.id)
        .order_by(EventRegistration.registration_date)
    ).all()

    attendees = []
    for registration, user in rows:
        statuses = [
            CouponStatus(
                coupon_id=coupon.coupon_id,
                coupon_name=coupon.name,
                used=(user.id, coupon.coupon_id) in scanned,
                scanned_at=scanned.get((user.id, coupon.coupon_id)),
            )
            for coupon in coupons
        ]
        attendees.append(Attendee(user=user, registration=registration, coupons=statuses))

    return EventAttendees(event=event, attendees=attendees)
