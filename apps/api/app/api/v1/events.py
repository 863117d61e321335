from uuid import UUID

from fastapi import APIRouter

from app.api.v1.schemas import CouponOut, Envelope, EventOut, FeedbackOut, RegistrationOut
from app.auth.deps import CurrentUser, DBSession
from app.services.coupon_service import list_food_coupons
from app.services.events_service import get_event
from app.services.feedback_service import get_event_feedback
from app.services.registration_service import cancel_event_registration, register_for_event

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/{event_id}", response_model=Envelope[EventOut])
def event_detail(event_id: UUID, user: CurrentUser, db: DBSession):
    return Envelope(data=EventOut.model_validate(get_event(db, event_id)))


@router.get("/{event_id}/coupons", response_model=Envelope[list[CouponOut]])
def event_coupons(event_id: UUID, user: CurrentUser, db: DBSession):
    coupons = list_food_coupons(db, event_id)
    return Envelope(data=[CouponOut.model_validate(coupon) for coupon in coupons])


@router.get("/{event_id}/feedback", response_model=Envelope[FeedbackOut])
def event_feedback(event_id: UUID, user: CurrentUser, db: DBSession):
    return Envelope(data=FeedbackOut.model_validate(get_event_feedback(db, event_id)))


@router.post("/{event_id}/register", response_model=Envelope[RegistrationOut])
def register(event_id: UUID, user: CurrentUser, db: DBSession):
    result = register_for_event(db, user, event_id)
    return Envelope(
        message="Successfully registered for event",
        data=RegistrationOut.model_validate(result),
    )


@router.post("/{event_id}/cancel", response_model=Envelope[RegistrationOut])
def cancel(event_id: UUID, user: CurrentUser, db: DBSession):
    result = cancel_event_registration(db, user, event_id)
    return Envelope(
        message="Registration cancelled",
        data=RegistrationOut.model_validate(result),
    )
