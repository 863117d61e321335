import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin


class Event(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "events"
    __table_args__ = (
        sa.CheckConstraint("end_time > start_time", name="ck_events_time_window"),
        sa.CheckConstraint(
            "max_capacity IS NULL OR max_capacity >= 1", name="ck_events_max_capacity_positive"
        ),
        sa.CheckConstraint("registered_count >= 0", name="ck_events_registered_count_positive"),
        sa.CheckConstraint(
            "max_capacity IS NULL OR registered_count <= max_capacity",
            name="ck_events_registered_count_lte_capacity",
        ),
        sa.Index("ix_events_organization_start_time", "organization_id", "start_time"),
    )

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    registration_deadline: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    venue_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    venue_address: Mapped[str | None] = mapped_column(String(300), nullable=True)
    venue_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    venue_country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    online_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Unbounded when null
    max_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Confirmed registrations admitted so far; only moved by conditional UPDATEs
    registered_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
