from app.services.checkin_service import check_in
from app.services.coupon_service import add_food_coupon, mark_coupon_used
from app.services.events_service import create_event, create_session, delete_event, update_event
from app.services.feedback_service import add_feedback
from app.services.notification_service import create_notification, repair_fanout
from app.services.registration_service import (
    cancel_event_registration,
    cancel_session_registration,
    register_for_event,
    register_for_session,
)

__all__ = [
    "create_event",
    "update_event",
    "delete_event",
    "create_session",
    "register_for_event",
    "register_for_session",
    "cancel_event_registration",
    "cancel_session_registration",
    "check_in",
    "add_food_coupon",
    "mark_coupon_used",
    "add_feedback",
    "create_notification",
    "repair_fanout",
]
