from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from app.api.v1.schemas.common import SchemaBase


class FeedbackCreate(SchemaBase):
    event_id: UUID
    # Free-form question set, stored as posted
    feedback: dict[str, Any] | list[Any]


class FeedbackOut(SchemaBase):
    id: UUID
    event_id: UUID
    organization_id: UUID
    feedback: dict[str, Any] | list[Any]
    created_at: datetime
    updated_at: datetime
