from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field, computed_field, field_validator

from app.api.v1.schemas.common import SchemaBase, ensure_tzaware


class TZAwareMixin(SchemaBase):
    @field_validator(
        "start_time",
        "end_time",
        "registration_deadline",
        "created_at",
        "updated_at",
        mode="after",
        check_fields=False,
    )
    @classmethod
    def _validate_tzaware(cls, value: datetime | None) -> datetime | None:
        return ensure_tzaware(value)


class EventCreate(TZAwareMixin):
    organization_id: UUID
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    event_type: str | None = None
    start_time: datetime
    end_time: datetime
    registration_deadline: datetime | None = None
    venue_name: str | None = None
    venue_address: str | None = None
    venue_city: str | None = None
    venue_country: str | None = None
    is_online: bool = False
    online_url: str | None = None
    max_capacity: int | None = Field(default=None, ge=1)


class EventUpdate(TZAwareMixin):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    event_type: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    registration_deadline: datetime | None = None
    venue_name: str | None = None
    venue_address: str | None = None
    venue_city: str | None = None
    venue_country: str | None = None
    is_online: bool | None = None
    online_url: str | None = None
    max_capacity: int | None = Field(default=None, ge=1)


class EventOut(TZAwareMixin):
    id: UUID
    organization_id: UUID
    name: str
    description: str | None = None
    event_type: str | None = None
    start_time: datetime
    end_time: datetime
    registration_deadline: datetime | None = None
    venue_name: str | None = None
    venue_address: str | None = None
    venue_city: str | None = None
    venue_country: str | None = None
    is_online: bool
    online_url: str | None = None
    max_capacity: int | None = None
    registered_count: int
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="remainingCapacity")
    @property
    def remaining_capacity(self) -> int | None:
        if self.max_capacity is None:
            return None
        return max(self.max_capacity - self.registered_count, 0)


class SessionCreate(TZAwareMixin):
    event_id: UUID
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    start_time: datetime
    end_time: datetime
    location: str | None = None
    is_online: bool = False
    online_url: str | None = None
    max_capacity: int | None = Field(default=None, ge=1)


class SessionOut(TZAwareMixin):
    id: UUID
    event_id: UUID
    name: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    location: str | None = None
    is_online: bool
    online_url: str | None = None
    max_capacity: int | None = None
    registered_count: int


class EventDeletedOut(SchemaBase):
    event_id: UUID
    deleted: bool = True
