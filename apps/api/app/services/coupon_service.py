from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import CouponRedemption, FoodCoupon, User
from app.models.base import utcnow
from app.services.authorization import Action, require_event
from app.services.error_codes import ErrorCode
from app.services.events_service import get_event
from app.services.exceptions import (
    ConflictError,
    ConsistencyFaultError,
    NotFoundError,
    RegistrationRejectedError,
    ValidationError,
)
from app.services.registration_service import confirmed_event_registration
from app.services.users import find_user_by_identifier

logger = structlog.get_logger(__name__)

# Upper bound of the INTEGER coupon_id column
MAX_COUPON_ID = 2**31 - 1


@dataclass(frozen=True)
class RedemptionResult:
    event_id: uuid.UUID
    user_id: uuid.UUID
    coupon_id: int
    coupon_name: str
    scanned_at: datetime


def _get_coupon(db: Session, event_id: uuid.UUID, coupon_id: int) -> FoodCoupon | None:
    if not 1 <= coupon_id <= MAX_COUPON_ID:
        return None
    return db.scalar(
        select(FoodCoupon).where(
            FoodCoupon.event_id == event_id,
            FoodCoupon.coupon_id == coupon_id,
        )
    )


def _get_redemption(
    db: Session, event_id: uuid.UUID, user_id: uuid.UUID, coupon_id: int
) -> CouponRedemption | None:
    return db.scalar(
        select(CouponRedemption).where(
            CouponRedemption.event_id == event_id,
            CouponRedemption.user_id == user_id,
            CouponRedemption.coupon_id == coupon_id,
        )
    )


def _already_redeemed(existing: CouponRedemption) -> ConflictError:
    return ConflictError(
        ErrorCode.COUPON_ALREADY_REDEEMED.value,
        "food coupon has already been used by this user",
        details={"scannedAt": existing.scanned_at.isoformat()},
    )


def add_food_coupon(
    db: Session,
    actor: User,
    event_id: uuid.UUID,
    name: str,
    description: str | None = None,
    quantity: int = 0,
) -> FoodCoupon:
    event = require_event(db, actor, event_id, Action.MANAGE_EVENT)

    name = (name or "").strip()
    if not name:
        raise ValidationError(ErrorCode.VALIDATION_ERROR.value, "coupon name is required")
    if quantity < 0:
        raise ValidationError(ErrorCode.VALIDATION_ERROR.value, "quantity cannot be negative")

    next_id = (
        db.scalar(select(func.max(FoodCoupon.coupon_id)).where(FoodCoupon.event_id == event.id))
        or 0
    ) + 1
    coupon = FoodCoupon(
        event_id=event.id,
        coupon_id=next_id,
        name=name,
        description=description or "",
        quantity=quantity,
    )
    db.add(coupon)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            ErrorCode.COUPON_ID_CONFLICT.value, "another coupon was added at the same time, retry"
        ) from exc

    db.refresh(coupon)
    return coupon


def list_food_coupons(db: Session, event_id: uuid.UUID) -> list[FoodCoupon]:
    event = get_event(db, event_id)
    return list(
        db.scalars(
            select(FoodCoupon)
            .where(FoodCoupon.event_id == event.id)
            .order_by(FoodCoupon.coupon_id)
        ).all()
    )


def mark_coupon_used(
    db: Session,
    actor: User,
    event_id: uuid.UUID,
    identifier: str,
    coupon_id: int,
) -> RedemptionResult:
    event = require_event(db, actor, event_id, Action.REDEEM_COUPON)

    coupon = _get_coupon(db, event.id, coupon_id)
    if coupon is None:
        raise NotFoundError(ErrorCode.COUPON_NOT_FOUND.value, "food coupon not found")

    user = find_user_by_identifier(db, identifier)
    if confirmed_event_registration(db, event.id, user.id) is None:
        logger.info(
            "coupon_redemption_rejected",
            event_id=str(event.id),
            user_id=str(user.id),
            coupon_id=coupon_id,
            code=ErrorCode.NOT_REGISTERED.value,
        )
        raise RegistrationRejectedError(
            ErrorCode.NOT_REGISTERED.value, "user is not registered for this event"
        )

    existing = _get_redemption(db, event.id, user.id, coupon_id)
    if existing is not None:
        logger.info(
            "coupon_redemption_rejected",
            event_id=str(event.id),
            user_id=str(user.id),
            coupon_id=coupon_id,
            code=ErrorCode.COUPON_ALREADY_REDEEMED.value,
        )
        raise _already_redeemed(existing)

    now = utcnow()
    db.add(
        CouponRedemption(
            event_id=event.id,
            user_id=user.id,
            coupon_id=coupon_id,
            scanned_at=now,
            redeemed_by_id=actor.id,
        )
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        existing = _get_redemption(db, event.id, user.id, coupon_id)
        if existing is not None:
            raise _already_redeemed(existing) from exc
        if _get_coupon(db, event.id, coupon_id) is None:
            raise NotFoundError(ErrorCode.COUPON_NOT_FOUND.value, "food coupon not found") from exc
        logger.error(
            "consistency_fault",
            kind="redemption_insert_failed",
            event_id=str(event.id),
            user_id=str(user.id),
            coupon_id=coupon_id,
        )
        raise ConsistencyFaultError(
            ErrorCode.CONSISTENCY_FAULT.value, "coupon redemption could not be recorded"
        ) from exc

    logger.info(
        "coupon_redeemed",
        event_id=str(event.id),
        user_id=str(user.id),
        coupon_id=coupon_id,
        operator_id=str(actor.id),
    )
    return RedemptionResult(
        event_id=event.id,
        user_id=user.id,
        coupon_id=coupon_id,
        coupon_name=coupon.name,
        scanned_at=now,
    )
