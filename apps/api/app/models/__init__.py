from app.models.base import Base
from app.models.coupon import CouponRedemption, FoodCoupon
from app.models.event import Event
from app.models.feedback import FeedbackForm
from app.models.notification import Notification, UserNotification
from app.models.organization import Organization, OrganizationMember
from app.models.registration import EventRegistration, SessionRegistration
from app.models.session import EventSession
from app.models.user import User

__all__ = [
    "Base",
    "User",
    "Organization",
    "OrganizationMember",
    "Event",
    "EventSession",
    "FoodCoupon",
    "EventRegistration",
    "SessionRegistration",
    "CouponRedemption",
    "FeedbackForm",
    "Notification",
    "UserNotification",
]
