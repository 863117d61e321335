import uuid

from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.services.consistency import reconcile_registration_counters as reconcile_counters
from app.services.legacy_import import backfill_legacy_registrations as backfill
from app.services.notification_service import repair_fanout
from app.worker.celery_app import celery_app

logger = get_task_logger(__name__)


@celery_app.task(name="repair_notification_fanout")
def repair_notification_fanout(notification_id: str) -> dict:
    db: Session = SessionLocal()
    try:
        logger.info("repair_notification_fanout started notification_id=%s", notification_id)
        created = repair_fanout(db, uuid.UUID(notification_id))
        logger.info(
            "repair_notification_fanout completed notification_id=%s created=%s",
            notification_id,
            created,
        )
        return {"notification_id": notification_id, "created": created}
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@celery_app.task(name="reconcile_registration_counters")
def reconcile_registration_counters(event_id: str | None = None) -> dict:
    db: Session = SessionLocal()
    try:
        logger.info("reconcile_registration_counters started event_id=%s", event_id)
        corrections = reconcile_counters(db, uuid.UUID(event_id) if event_id else None)
        logger.info(
            "reconcile_registration_counters completed event_id=%s corrections=%s",
            event_id,
            len(corrections),
        )
        return {
            "corrections": [
                {
                    "entity": c.entity,
                    "entity_id": str(c.entity_id),
                    "recorded": c.recorded,
                    "actual": c.actual,
                    "applied": c.applied,
                }
                for c in corrections
            ]
        }
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@celery_app.task(name="backfill_legacy_registrations")
def backfill_legacy_registrations(documents: list[dict]) -> dict:
    db: Session = SessionLocal()
    try:
        logger.info("backfill_legacy_registrations started documents=%s", len(documents))
        report = backfill(db, documents)
        logger.info(
            "backfill_legacy_registrations completed registrations=%s redemptions=%s",
            report.registrations_created,
            report.redemptions_created,
        )
        return {
            "users_created": report.users_created,
            "registrations_created": report.registrations_created,
            "redemptions_created": report.redemptions_created,
            "skipped": report.skipped,
        }
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
