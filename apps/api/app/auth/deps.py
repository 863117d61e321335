from __future__ import annotations

from datetime import timedelta
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.jwt import verify_access_token
from app.core.config import settings
from app.db import get_db
from app.models import User
from app.models.base import utcnow

logger = structlog.get_logger(__name__)

DBSession = Annotated[Session, Depends(get_db)]

LAST_SEEN_RESOLUTION = timedelta(minutes=5)


def _unauthorized(detail: str = "unauthorized") -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _claims_from_token(token: str) -> tuple[str, str | None, str | None]:
    # Local dev auth only
    if settings.auth_mode == "dev" and settings.env == "local":
        prefix = settings.dev_auth_prefix
        if not token.startswith(prefix):
            raise _unauthorized(f"invalid dev token (expected prefix {prefix})")

        email = token.removeprefix(prefix).strip().lower()
        if "@" not in email:
            raise _unauthorized("invalid email in token")
        return f"dev:{email}", email, None

    if settings.auth_mode == "jwt":
        try:
            claims = verify_access_token(token)
        except ValueError:
            raise _unauthorized("invalid access token") from None
        return claims["sub"], claims.get("email"), claims.get("name")

    raise _unauthorized("auth not configured")


def resolve_user(db: Session, external_id: str, email: str | None, name: str | None) -> User:
    """Find the user for an identity-provider subject, creating it on first sight."""
    user = db.scalar(select(User).where(User.external_id == external_id))
    if user:
        now = utcnow()
        if user.last_seen_at is None or now - user.last_seen_at > LAST_SEEN_RESOLUTION:
            user.last_seen_at = now
            db.add(user)
            db.commit()
            db.refresh(user)
        return user

    if email and db.scalar(select(User.id).where(User.email == email)) is not None:
        # The address already belongs to another subject; keep the account without it
        email = None

    user = User(external_id=external_id, email=email, full_name=name, last_seen_at=utcnow())
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent first request for the same subject
        db.rollback()
        user = db.scalar(select(User).where(User.external_id == external_id))
        if not user:
            raise
        return user

    db.refresh(user)
    logger.info("user_created", user_id=str(user.id), external_id=external_id)
    return user


def get_current_user(request: Request, db: DBSession) -> User:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise _unauthorized("missing bearer token")

    token = auth.removeprefix("Bearer ").strip()
    external_id, email, name = _claims_from_token(token)
    return resolve_user(db, external_id, email, name)


CurrentUser = Annotated[User, Depends(get_current_user)]
