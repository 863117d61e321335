from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import Event, EventRegistration, Notification, User, UserNotification
from app.models.base import utcnow
from app.models.registration import RegistrationStatus
from app.services.authorization import Action, require_event
from app.services.error_codes import ErrorCode
from app.services.exceptions import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

FANOUT_ATTEMPTS = 2


@dataclass(frozen=True)
class NotificationResult:
    notification: Notification
    delivery_count: int


@dataclass(frozen=True)
class InboxItem:
    delivery: UserNotification
    notification: Notification
    event_name: str


def _missing_recipients(db: Session, notification: Notification) -> list[uuid.UUID]:
    audience = db.scalars(
        select(EventRegistration.user_id).where(
            EventRegistration.event_id == notification.event_id,
            EventRegistration.status == RegistrationStatus.CONFIRMED,
            EventRegistration.registration_date <= notification.created_at,
        )
    ).all()
    delivered = set(
        db.scalars(
            select(UserNotification.user_id).where(
                UserNotification.notification_id == notification.id
            )
        ).all()
    )
    return [user_id for user_id in audience if user_id not in delivered]


def fan_out(db: Session, notification: Notification) -> int:
    """Create the missing delivery rows for a notification.

    The audience is the set of confirmed registrations that existed when the
    notification was created, so re-running this never reaches users who
    registered later. Rows that already exist are skipped.
    """
    notification_id = notification.id
    for attempt in range(FANOUT_ATTEMPTS):
        recipients = _missing_recipients(db, notification)
        for user_id in recipients:
            db.add(UserNotification(notification_id=notification_id, user_id=user_id))
        try:
            db.commit()
        except IntegrityError:
            # A concurrent pass inserted some of the same rows; recompute.
            db.rollback()
            if attempt == FANOUT_ATTEMPTS - 1:
                raise
            continue

        logger.info(
            "notification_fanned_out",
            notification_id=str(notification_id),
            created=len(recipients),
        )
        return len(recipients)
    return 0


def delivery_count(db: Session, notification_id: uuid.UUID) -> int:
    return int(
        db.scalar(
            select(func.count())
            .select_from(UserNotification)
            .where(UserNotification.notification_id == notification_id)
        )
        or 0
    )


def create_notification(
    db: Session,
    actor: User,
    event_id: uuid.UUID,
    title: str,
    message: str,
    is_push: bool = False,
) -> NotificationResult:
    event = require_event(db, actor, event_id, Action.NOTIFY)

    title = (title or "").strip()
    message = (message or "").strip()
    if not title or not message:
        raise ValidationError(ErrorCode.VALIDATION_ERROR.value, "title and message are required")

    notification = Notification(
        event_id=event.id,
        title=title,
        message=message,
        is_push=is_push,
        is_in_app=True,
        created_by_id=actor.id,
        created_at=utcnow(),
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)

    fan_out(db, notification)
    return NotificationResult(
        notification=notification,
        delivery_count=delivery_count(db, notification.id),
    )


def repair_fanout(db: Session, notification_id: uuid.UUID) -> int:
    notification = db.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError(ErrorCode.NOTIFICATION_NOT_FOUND.value, "notification not found")
    return fan_out(db, notification)


def list_user_notifications(db: Session, user: User) -> list[InboxItem]:
    rows = db.execute(
        select(UserNotification, Notification, Event.name)
        .join(Notification, Notification.id == UserNotification.notification_id)
        .join(Event, Event.id == Notification.event_id)
        .where(UserNotification.user_id == user.id)
        .order_by(UserNotification.created_at.desc())
    ).all()
    return [
        InboxItem(delivery=delivery, notification=notification, event_name=event_name)
        for delivery, notification, event_name in rows
    ]


def mark_notification_read(db: Session, user: User, notification_id: uuid.UUID) -> InboxItem:
    delivery = db.scalar(
        select(UserNotification).where(
            UserNotification.notification_id == notification_id,
            UserNotification.user_id == user.id,
        )
    )
    if delivery is None:
        raise NotFoundError(ErrorCode.NOTIFICATION_NOT_FOUND.value, "notification not found")

    if not delivery.is_read:
        delivery.is_read = True
        delivery.read_at = utcnow()
        db.add(delivery)
        db.commit()
        db.refresh(delivery)

    notification = db.get(Notification, notification_id)
    event = db.get(Event, notification.event_id)
    return InboxItem(delivery=delivery, notification=notification, event_name=event.name)
