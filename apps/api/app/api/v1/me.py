from uuid import UUID

from fastapi import APIRouter

from app.api.v1.schemas import (
    CouponUsageOut,
    Envelope,
    InboxItemOut,
    MeOut,
    UserEventRegistrationOut,
    UserRegistrationsOut,
    UserSessionRegistrationOut,
)
from app.auth.deps import CurrentUser, DBSession
from app.services.notification_service import (
    InboxItem,
    list_user_notifications,
    mark_notification_read,
)
from app.services.registration_service import list_user_registrations

router = APIRouter(prefix="/me", tags=["me"])


def _inbox_out(item: InboxItem) -> InboxItemOut:
    return InboxItemOut(
        notification_id=item.notification.id,
        event_id=item.notification.event_id,
        event_name=item.event_name,
        title=item.notification.title,
        message=item.notification.message,
        is_read=item.delivery.is_read,
        read_at=item.delivery.read_at,
        created_at=item.delivery.created_at,
    )


@router.get("", response_model=Envelope[MeOut])
def me(user: CurrentUser):
    return Envelope(data=MeOut.model_validate(user))


@router.get("/registrations", response_model=Envelope[UserRegistrationsOut])
def my_registrations(user: CurrentUser, db: DBSession):
    registrations = list_user_registrations(db, user)
    return Envelope(
        data=UserRegistrationsOut(
            registered_events=[
                UserEventRegistrationOut(
                    event_id=entry.event_id,
                    event_name=entry.event_name,
                    registration_date=entry.registration_date,
                    status=entry.status,
                    attended=entry.attended,
                    attendance_time=entry.attendance_time,
                    coupons_used=[CouponUsageOut.model_validate(usage) for usage in entry.coupons_used],
                )
                for entry in registrations.events
            ],
            registered_sessions=[
                UserSessionRegistrationOut.model_validate(entry) for entry in registrations.sessions
            ],
        )
    )


@router.get("/notifications", response_model=Envelope[list[InboxItemOut]])
def my_notifications(user: CurrentUser, db: DBSession):
    return Envelope(data=[_inbox_out(item) for item in list_user_notifications(db, user)])


@router.post("/notifications/{notification_id}/read", response_model=Envelope[InboxItemOut])
def read_notification(notification_id: UUID, user: CurrentUser, db: DBSession):
    item = mark_notification_read(db, user, notification_id)
    return Envelope(message="Notification marked as read", data=_inbox_out(item))
