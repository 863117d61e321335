from __future__ import annotations

from datetime import datetime
from uuid import UUID

from app.api.v1.schemas.common import SchemaBase
from app.models.registration import RegistrationStatus


class SessionRegistrationIn(SchemaBase):
    event_id: UUID
    session_id: UUID


class RegistrationOut(SchemaBase):
    event_id: UUID
    session_id: UUID | None = None
    registration_date: datetime
    status: RegistrationStatus


class CouponUsageOut(SchemaBase):
    coupon_id: int
    scanned_at: datetime | None = None


class UserEventRegistrationOut(SchemaBase):
    event_id: UUID
    event_name: str
    registration_date: datetime
    status: RegistrationStatus
    attended: bool
    attendance_time: datetime | None = None
    coupons_used: list[CouponUsageOut]


class UserSessionRegistrationOut(SchemaBase):
    session_id: UUID
    event_id: UUID
    session_name: str
    registration_date: datetime
    status: RegistrationStatus


class UserRegistrationsOut(SchemaBase):
    registered_events: list[UserEventRegistrationOut]
    registered_sessions: list[UserSessionRegistrationOut]


class CouponStatusOut(SchemaBase):
    coupon_id: int
    coupon_name: str
    used: bool
    scanned_at: datetime | None = None


class AttendeeOut(SchemaBase):
    user_id: UUID
    external_id: str
    email: str | None = None
    full_name: str | None = None
    phone: str | None = None
    registration_date: datetime
    status: RegistrationStatus
    attended: bool
    check_in_time: datetime | None = None
    coupons: list[CouponStatusOut]


class EventAttendeesOut(SchemaBase):
    event_id: UUID
    event_name: str
    registered_count: int
    max_capacity: int | None = None
    registered_users: list[AttendeeOut]
