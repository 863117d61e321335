from app.api.v1.schemas.admin import (
    CheckInIn,
    CheckInOut,
    CouponCreate,
    CouponOut,
    CouponRedeemIn,
    CouponRedeemOut,
)
from app.api.v1.schemas.common import Envelope, SchemaBase
from app.api.v1.schemas.events import (
    EventCreate,
    EventDeletedOut,
    EventOut,
    EventUpdate,
    SessionCreate,
    SessionOut,
)
from app.api.v1.schemas.feedback import FeedbackCreate, FeedbackOut
from app.api.v1.schemas.notifications import (
    InboxItemOut,
    NotificationCreate,
    NotificationCreatedOut,
    NotificationOut,
)
from app.api.v1.schemas.organizations import (
    MemberCreate,
    MemberOut,
    OrganizationCreate,
    OrganizationOut,
)
from app.api.v1.schemas.registrations import (
    AttendeeOut,
    CouponStatusOut,
    CouponUsageOut,
    EventAttendeesOut,
    RegistrationOut,
    SessionRegistrationIn,
    UserEventRegistrationOut,
    UserRegistrationsOut,
    UserSessionRegistrationOut,
)
from app.api.v1.schemas.users import MeOut

__all__ = [
    "SchemaBase",
    "Envelope",
    "MeOut",
    "OrganizationCreate",
    "OrganizationOut",
    "MemberCreate",
    "MemberOut",
    "EventCreate",
    "EventUpdate",
    "EventOut",
    "EventDeletedOut",
    "SessionCreate",
    "SessionOut",
    "FeedbackCreate",
    "FeedbackOut",
    "SessionRegistrationIn",
    "RegistrationOut",
    "CouponUsageOut",
    "UserEventRegistrationOut",
    "UserSessionRegistrationOut",
    "UserRegistrationsOut",
    "CouponStatusOut",
    "AttendeeOut",
    "EventAttendeesOut",
    "CheckInIn",
    "CheckInOut",
    "CouponCreate",
    "CouponOut",
    "CouponRedeemIn",
    "CouponRedeemOut",
    "NotificationCreate",
    "NotificationOut",
    "NotificationCreatedOut",
    "InboxItemOut",
]
