from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.api.v1.schemas.common import SchemaBase


class NotificationCreate(SchemaBase):
    event_id: UUID
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    is_push: bool = False


class NotificationOut(SchemaBase):
    id: UUID
    event_id: UUID
    title: str
    message: str
    is_push: bool
    is_in_app: bool
    created_at: datetime


class NotificationCreatedOut(SchemaBase):
    notification: NotificationOut
    delivery_count: int


class InboxItemOut(SchemaBase):
    notification_id: UUID
    event_id: UUID
    event_name: str
    title: str
    message: str
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime
