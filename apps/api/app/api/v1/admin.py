from uuid import UUID

from fastapi import APIRouter, Response

from app.api.v1.schemas import (
    AttendeeOut,
    CheckInIn,
    CheckInOut,
    CouponCreate,
    CouponOut,
    CouponRedeemIn,
    CouponRedeemOut,
    CouponStatusOut,
    Envelope,
    EventAttendeesOut,
    EventCreate,
    EventDeletedOut,
    EventOut,
    EventUpdate,
    FeedbackCreate,
    FeedbackOut,
    NotificationCreate,
    NotificationCreatedOut,
    NotificationOut,
    SessionCreate,
    SessionOut,
)
from app.auth.deps import CurrentUser, DBSession
from app.services.checkin_service import check_in
from app.services.coupon_service import add_food_coupon, mark_coupon_used
from app.services.events_service import create_event, create_session, delete_event, update_event
from app.services.feedback_service import add_feedback
from app.services.notification_service import create_notification
from app.services.registration_service import list_event_attendees

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/events", response_model=Envelope[EventOut], status_code=201)
def admin_create_event(payload: EventCreate, user: CurrentUser, db: DBSession):
    event = create_event(db, user, payload)
    return Envelope(message="Event created", data=EventOut.model_validate(event))


@router.patch("/events/{event_id}", response_model=Envelope[EventOut])
def admin_update_event(event_id: UUID, payload: EventUpdate, user: CurrentUser, db: DBSession):
    event = update_event(db, user, event_id, payload)
    return Envelope(message="Event updated", data=EventOut.model_validate(event))


@router.delete("/events/{event_id}", response_model=Envelope[EventDeletedOut])
def admin_delete_event(event_id: UUID, user: CurrentUser, db: DBSession):
    delete_event(db, user, event_id)
    return Envelope(message="Event deleted", data=EventDeletedOut(event_id=event_id))


@router.get("/events/{event_id}/attendees", response_model=Envelope[EventAttendeesOut])
def admin_event_attendees(event_id: UUID, user: CurrentUser, db: DBSession):
    view = list_event_attendees(db, user, event_id)
    attendees = [
        AttendeeOut(
            user_id=attendee.user.id,
            external_id=attendee.user.external_id,
            email=attendee.user.email,
            full_name=attendee.user.full_name,
            phone=attendee.user.phone,
            registration_date=attendee.registration.registration_date,
            status=attendee.registration.status,
            attended=attendee.registration.attended,
            check_in_time=attendee.registration.check_in_time,
            coupons=[CouponStatusOut.model_validate(status) for status in attendee.coupons],
        )
        for attendee in view.attendees
    ]
    return Envelope(
        data=EventAttendeesOut(
            event_id=view.event.id,
            event_name=view.event.name,
            registered_count=view.event.registered_count,
            max_capacity=view.event.max_capacity,
            registered_users=attendees,
        )
    )


@router.post("/sessions", response_model=Envelope[SessionOut], status_code=201)
def admin_create_session(payload: SessionCreate, user: CurrentUser, db: DBSession):
    session = create_session(db, user, payload)
    return Envelope(message="Session created", data=SessionOut.model_validate(session))


@router.post("/coupons", response_model=Envelope[CouponOut], status_code=201)
def admin_add_coupon(payload: CouponCreate, user: CurrentUser, db: DBSession):
    coupon = add_food_coupon(
        db,
        user,
        payload.event_id,
        payload.name,
        description=payload.description,
        quantity=payload.quantity,
    )
    return Envelope(message="Food coupon added", data=CouponOut.model_validate(coupon))


@router.post("/checkin", response_model=Envelope[CheckInOut])
def admin_checkin(payload: CheckInIn, response: Response, user: CurrentUser, db: DBSession):
    result = check_in(db, user, payload.event_id, payload.user_identifier)
    if result.already_checked_in:
        response.status_code = 208

    return Envelope(
        message="User already checked in" if result.already_checked_in else "Check-in successful",
        data=CheckInOut(
            event_id=result.event.id,
            event_name=result.event.name,
            user_id=result.user.id,
            full_name=result.user.full_name,
            email=result.user.email,
            check_in_time=result.check_in_time,
            already_checked_in=result.already_checked_in,
        ),
    )


@router.post("/coupon/redeem", response_model=Envelope[CouponRedeemOut])
def admin_redeem_coupon(payload: CouponRedeemIn, user: CurrentUser, db: DBSession):
    result = mark_coupon_used(db, user, payload.event_id, payload.user_identifier, payload.coupon_id)
    return Envelope(
        message="Food coupon marked as used",
        data=CouponRedeemOut.model_validate(result),
    )


@router.post("/notifications", response_model=Envelope[NotificationCreatedOut], status_code=201)
def admin_create_notification(payload: NotificationCreate, user: CurrentUser, db: DBSession):
    result = create_notification(
        db,
        user,
        payload.event_id,
        payload.title,
        payload.message,
        is_push=payload.is_push,
    )
    return Envelope(
        message="Notification created",
        data=NotificationCreatedOut(
            notification=NotificationOut.model_validate(result.notification),
            delivery_count=result.delivery_count,
        ),
    )


@router.post("/feedback", response_model=Envelope[FeedbackOut], status_code=201)
def admin_add_feedback(
    payload: FeedbackCreate, response: Response, user: CurrentUser, db: DBSession
):
    result = add_feedback(db, user, payload.event_id, payload.feedback)
    if not result.created:
        response.status_code = 200

    return Envelope(
        message="Feedback added successfully" if result.created else "Feedback updated",
        data=FeedbackOut.model_validate(result.form),
    )
