import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin, utcnow


class FoodCoupon(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "food_coupons"
    __table_args__ = (
        UniqueConstraint("event_id", "coupon_id", name="uq_food_coupons_event_coupon"),
        sa.CheckConstraint("quantity >= 0", name="ck_food_coupons_quantity_positive"),
    )

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    # Scanned from the coupon QR code; unique within the event only
    coupon_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CouponRedemption(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "coupon_redemptions"
    __table_args__ = (
        UniqueConstraint(
            "event_id", "user_id", "coupon_id", name="uq_coupon_redemptions_event_user_coupon"
        ),
        sa.ForeignKeyConstraint(
            ["event_id", "coupon_id"],
            ["food_coupons.event_id", "food_coupons.coupon_id"],
            ondelete="CASCADE",
            name="fk_coupon_redemptions_food_coupon",
        ),
    )

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    coupon_id: Mapped[int] = mapped_column(Integer, nullable=False)
    scanned_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    redeemed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
