from __future__ import annotations

from datetime import datetime
from uuid import UUID

from app.api.v1.schemas.common import SchemaBase
from app.models.user import UserRole


class MeOut(SchemaBase):
    id: UUID
    external_id: str
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None
    phone: str | None = None
    role: UserRole
    last_seen_at: datetime | None = None
