from uuid import UUID

from fastapi import APIRouter

from app.api.v1.schemas import Envelope, RegistrationOut, SessionRegistrationIn
from app.auth.deps import CurrentUser, DBSession
from app.services.registration_service import cancel_session_registration, register_for_session

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/register", response_model=Envelope[RegistrationOut])
def register(payload: SessionRegistrationIn, user: CurrentUser, db: DBSession):
    result = register_for_session(db, user, payload.event_id, payload.session_id)
    return Envelope(
        message="Successfully registered for session",
        data=RegistrationOut.model_validate(result),
    )


@router.post("/{session_id}/cancel", response_model=Envelope[RegistrationOut])
def cancel(session_id: UUID, user: CurrentUser, db: DBSession):
    result = cancel_session_registration(db, user, session_id)
    return Envelope(
        message="Session registration cancelled",
        data=RegistrationOut.model_validate(result),
    )
