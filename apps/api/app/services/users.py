from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import User
from app.services.error_codes import ErrorCode
from app.services.exceptions import NotFoundError, ValidationError


def find_user_by_identifier(db: Session, identifier: str) -> User:
    """Resolve a scanned identifier to a user.

    QR codes normally carry the identity provider's subject; operators may
    also type the user's primary key. Provider subjects are often UUIDs too,
    so a UUID-shaped value that is not a primary key is retried as a subject.
    """
    raw = (identifier or "").strip()
    if not raw:
        raise ValidationError(ErrorCode.VALIDATION_ERROR.value, "user identifier is required")

    try:
        user_id = uuid.UUID(raw)
    except ValueError:
        user_id = None

    if user_id is not None:
        user = db.get(User, user_id)
        if user is not None:
            return user

    user = db.scalar(select(User).where(User.external_id == raw))
    if user is None:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND.value, "user not found")
    return user
