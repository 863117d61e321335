from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models import Event, EventRegistration, User
from app.models.base import utcnow
from app.models.registration import RegistrationStatus
from app.services.authorization import Action, require_event
from app.services.error_codes import ErrorCode
from app.services.exceptions import ConsistencyFaultError, RegistrationRejectedError
from app.services.registration_service import confirmed_event_registration
from app.services.users import find_user_by_identifier

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckInResult:
    event: Event
    user: User
    check_in_time: datetime
    already_checked_in: bool


def _not_registered() -> RegistrationRejectedError:
    return RegistrationRejectedError(
        ErrorCode.NOT_REGISTERED.value,
        "user is not registered for this event or registration is not confirmed",
    )


def check_in(db: Session, actor: User, event_id: uuid.UUID, identifier: str) -> CheckInResult:
    """Record attendance once per (user, event).

    A repeated scan is not an error: it returns the stored check-in time with
    ``already_checked_in`` set, so operators can rescan a QR code safely.
    """
    event = require_event(db, actor, event_id, Action.CHECK_IN)
    user = find_user_by_identifier(db, identifier)

    registration = confirmed_event_registration(db, event.id, user.id)
    if registration is None:
        raise _not_registered()

    if registration.attended:
        logger.info("checkin_repeated", event_id=str(event.id), user_id=str(user.id))
        return CheckInResult(
            event=event,
            user=user,
            check_in_time=registration.check_in_time,
            already_checked_in=True,
        )

    now = utcnow()
    result = db.execute(
        update(EventRegistration)
        .where(
            EventRegistration.id == registration.id,
            EventRegistration.status == RegistrationStatus.CONFIRMED,
            EventRegistration.attended.is_(False),
        )
        .values(attended=True, check_in_time=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        db.commit()
        logger.info(
            "checkin_recorded",
            event_id=str(event.id),
            user_id=str(user.id),
            operator_id=str(actor.id),
        )
        return CheckInResult(event=event, user=user, check_in_time=now, already_checked_in=False)

    # Another scan got there first, or the registration was cancelled meanwhile.
    db.rollback()
    current = db.get(EventRegistration, registration.id)
    if current is not None and current.attended:
        logger.info("checkin_repeated", event_id=str(event.id), user_id=str(user.id))
        return CheckInResult(
            event=event,
            user=user,
            check_in_time=current.check_in_time,
            already_checked_in=True,
        )
    if current is None or current.status != RegistrationStatus.CONFIRMED:
        raise _not_registered()

    logger.error(
        "consistency_fault",
        kind="checkin_update_lost",
        event_id=str(event.id),
        user_id=str(user.id),
        registration_id=str(registration.id),
    )
    raise ConsistencyFaultError(
        ErrorCode.CONSISTENCY_FAULT.value,
        "check-in could not be recorded",
        details={"registration_id": str(registration.id)},
    )
