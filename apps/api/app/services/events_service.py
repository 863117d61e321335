from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.api.v1.schemas.events import EventCreate, EventUpdate, SessionCreate
from app.models import Event, EventSession, User
from app.services.authorization import Action, require_event, require_organization
from app.services.error_codes import ErrorCode
from app.services.exceptions import ConflictError, NotFoundError, ValidationError


def _validate_window(
    start_time: datetime | None,
    end_time: datetime | None,
    registration_deadline: datetime | None = None,
) -> None:
    if start_time and end_time and end_time <= start_time:
        raise ValidationError(ErrorCode.INVALID_TIME_WINDOW.value, "end_time must be after start_time")
    if registration_deadline and start_time and registration_deadline > start_time:
        raise ValidationError(
            ErrorCode.INVALID_DEADLINE.value, "registration_deadline must be <= start_time"
        )


def get_event(db: Session, event_id: Any) -> Event:
    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    return event


def create_event(db: Session, actor: User, payload: EventCreate) -> Event:
    organization = require_organization(db, actor, payload.organization_id, Action.MANAGE_EVENT)
    _validate_window(payload.start_time, payload.end_time, payload.registration_deadline)

    event = Event(
        **payload.model_dump(exclude={"organization_id"}),
        organization_id=organization.id,
        registered_count=0,
        created_by_id=actor.id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def update_event(db: Session, actor: User, event_id: Any, patch: EventUpdate) -> Event:
    event = require_event(db, actor, event_id, Action.MANAGE_EVENT)

    patch_data = patch.model_dump(exclude_unset=True)
    for key in ("name", "start_time", "end_time", "is_online"):
        if key in patch_data and patch_data[key] is None:
            raise ValidationError(ErrorCode.VALIDATION_ERROR.value, f"{key} cannot be null")

    _validate_window(
        patch_data.get("start_time", event.start_time),
        patch_data.get("end_time", event.end_time),
        patch_data.get("registration_deadline", event.registration_deadline),
    )

    if "max_capacity" in patch_data:
        new_capacity = patch_data.pop("max_capacity")
        stmt = update(Event).where(Event.id == event.id)
        if new_capacity is not None:
            # Admissions may land between the read and this write
            stmt = stmt.where(Event.registered_count <= new_capacity)
        result = db.execute(
            stmt.values(max_capacity=new_capacity).execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise ConflictError(
                ErrorCode.CAPACITY_BELOW_REGISTERED.value,
                "max_capacity cannot be below the current registration count",
            )

    for key, value in patch_data.items():
        setattr(event, key, value)

    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def delete_event(db: Session, actor: User, event_id: Any) -> None:
    """Remove an event; sessions, coupons, registrations and notifications cascade."""
    event = require_event(db, actor, event_id, Action.MANAGE_EVENT)
    db.delete(event)
    db.commit()


def create_session(db: Session, actor: User, payload: SessionCreate) -> EventSession:
    event = require_event(db, actor, payload.event_id, Action.MANAGE_EVENT)
    _validate_window(payload.start_time, payload.end_time)

    session = EventSession(
        **payload.model_dump(exclude={"event_id"}),
        event_id=event.id,
        registered_count=0,
        created_by_id=actor.id,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session
