import uuid
from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy import Boolean, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin, utcnow


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


def _status_column() -> Mapped[RegistrationStatus]:
    return mapped_column(
        sa.Enum(
            RegistrationStatus,
            name="registration_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=RegistrationStatus.CONFIRMED,
        server_default=RegistrationStatus.CONFIRMED.value,
    )


class EventRegistration(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """The single record of a user's registration for an event.

    Both the event's attendee list and the user's registered events are read
    from this table, so the two views cannot drift apart.
    """

    __tablename__ = "event_registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_registrations_event_user"),
        sa.Index("ix_event_registrations_event_status", "event_id", "status"),
        sa.CheckConstraint(
            "attended = false OR check_in_time IS NOT NULL",
            name="ck_event_registrations_check_in_time",
        ),
    )

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    registration_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    status: Mapped[RegistrationStatus] = _status_column()
    attended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    check_in_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


class SessionRegistration(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "session_registrations"
    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="uq_session_registrations_session_user"),
    )

    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    registration_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    status: Mapped[RegistrationStatus] = _status_column()
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
