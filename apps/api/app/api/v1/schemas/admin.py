from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.api.v1.schemas.common import SchemaBase


class CheckInIn(SchemaBase):
    event_id: UUID
    user_identifier: str = Field(min_length=1)


class CheckInOut(SchemaBase):
    event_id: UUID
    event_name: str
    user_id: UUID
    full_name: str | None = None
    email: str | None = None
    check_in_time: datetime
    already_checked_in: bool


class CouponCreate(SchemaBase):
    event_id: UUID
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    quantity: int = Field(default=0, ge=0)


class CouponOut(SchemaBase):
    event_id: UUID
    coupon_id: int
    name: str
    description: str | None = None
    quantity: int


class CouponRedeemIn(SchemaBase):
    event_id: UUID
    user_identifier: str = Field(min_length=1)
    coupon_id: int


class CouponRedeemOut(SchemaBase):
    event_id: UUID
    user_id: UUID
    coupon_id: int
    coupon_name: str
    scanned_at: datetime
