from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import Event, EventRegistration, EventSession, SessionRegistration
from app.models.registration import RegistrationStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CounterCorrection:
    entity: str
    entity_id: uuid.UUID
    recorded: int
    actual: int
    applied: bool


def _confirmed_counts(db: Session, registration_model: Any, key: Any, ids: list[uuid.UUID]) -> dict:
    rows = db.execute(
        select(key, func.count())
        .where(key.in_(ids), registration_model.status == RegistrationStatus.CONFIRMED)
        .group_by(key)
    ).all()
    return {entity_id: int(count) for entity_id, count in rows}


def _reconcile(
    db: Session,
    entity: str,
    model: Any,
    registration_model: Any,
    key: Any,
    rows: list[tuple[uuid.UUID, int]],
) -> list[CounterCorrection]:
    if not rows:
        return []
    actual_by_id = _confirmed_counts(db, registration_model, key, [entity_id for entity_id, _ in rows])

    corrections = []
    for entity_id, recorded in rows:
        actual = actual_by_id.get(entity_id, 0)
        if actual == recorded:
            continue

        logger.error(
            "consistency_fault",
            kind="registered_count_drift",
            entity=entity,
            entity_id=str(entity_id),
            recorded=recorded,
            actual=actual,
        )
        try:
            # Only overwrite the value we compared against
            result = db.execute(
                update(model)
                .where(model.id == entity_id, model.registered_count == recorded)
                .values(registered_count=actual)
                .execution_options(synchronize_session=False)
            )
            applied = result.rowcount == 1
            db.commit()
            if not applied:
                logger.warning(
                    "registered_count_moved",
                    entity=entity,
                    entity_id=str(entity_id),
                    recorded=recorded,
                )
        except IntegrityError:
            # More confirmed registrations than capacity; needs an operator
            db.rollback()
            applied = False
            logger.error(
                "consistency_fault",
                kind="confirmed_over_capacity",
                entity=entity,
                entity_id=str(entity_id),
                actual=actual,
            )
        corrections.append(
            CounterCorrection(
                entity=entity,
                entity_id=entity_id,
                recorded=recorded,
                actual=actual,
                applied=applied,
            )
        )
    return corrections


def reconcile_registration_counters(
    db: Session, event_id: uuid.UUID | None = None
) -> list[CounterCorrection]:
    """Recompute admission counters from the registration rows.

    ``registered_count`` is derived data. Drift means a write path bypassed
    the conditional updates; each mismatch is logged and corrected.
    """
    event_stmt = select(Event.id, Event.registered_count)
    session_stmt = select(EventSession.id, EventSession.registered_count)
    if event_id is not None:
        event_stmt = event_stmt.where(Event.id == event_id)
        session_stmt = session_stmt.where(EventSession.event_id == event_id)

    event_rows = [tuple(row) for row in db.execute(event_stmt).all()]
    session_rows = [tuple(row) for row in db.execute(session_stmt).all()]

    corrections = _reconcile(
        db, "event", Event, EventRegistration, EventRegistration.event_id, event_rows
    )
    corrections += _reconcile(
        db,
        "session",
        EventSession,
        SessionRegistration,
        SessionRegistration.session_id,
        session_rows,
    )
    logger.info(
        "registration_counters_reconciled",
        event_id=str(event_id) if event_id else None,
        checked=len(event_rows) + len(session_rows),
        corrected=sum(1 for c in corrections if c.applied),
    )
    return corrections
