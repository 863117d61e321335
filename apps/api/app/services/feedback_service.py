from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import FeedbackForm, User
from app.services.authorization import Action, require_event
from app.services.error_codes import ErrorCode
from app.services.events_service import get_event
from app.services.exceptions import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FeedbackResult:
    form: FeedbackForm
    created: bool


def _form_for_event(db: Session, event_id: uuid.UUID) -> FeedbackForm | None:
    return db.scalar(select(FeedbackForm).where(FeedbackForm.event_id == event_id))


def add_feedback(db: Session, actor: User, event_id: uuid.UUID, feedback: Any) -> FeedbackResult:
    """Store the feedback questions organizers hand out for an event.

    An event has at most one form. Posting again replaces its content.
    """
    event = require_event(db, actor, event_id, Action.MANAGE_EVENT)
    if not feedback:
        raise ValidationError(ErrorCode.VALIDATION_ERROR.value, "feedback is required")

    form = _form_for_event(db, event.id)
    created = form is None
    if created:
        form = FeedbackForm(
            event_id=event.id,
            organization_id=event.organization_id,
            feedback=feedback,
            created_by_id=actor.id,
        )
        db.add(form)
        try:
            db.commit()
        except IntegrityError:
            # Another organizer created the form first; replace theirs
            db.rollback()
            form = _form_for_event(db, event.id)
            if form is None:
                raise
            created = False

    if not created:
        form.feedback = feedback
        form.created_by_id = actor.id
        db.commit()

    db.refresh(form)
    logger.info(
        "feedback_form_saved",
        event_id=str(event.id),
        feedback_id=str(form.id),
        created=created,
    )
    return FeedbackResult(form=form, created=created)


def get_event_feedback(db: Session, event_id: uuid.UUID) -> FeedbackForm:
    event = get_event(db, event_id)
    form = _form_for_event(db, event.id)
    if form is None:
        raise NotFoundError(
            ErrorCode.FEEDBACK_NOT_FOUND.value, "no feedback questions found for this event"
        )
    return form
