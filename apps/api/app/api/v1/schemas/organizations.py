from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from app.api.v1.schemas.common import SchemaBase
from app.models.organization import MemberRole


class OrganizationCreate(SchemaBase):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    domain: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None
    website: str | None = None


class OrganizationOut(SchemaBase):
    id: UUID
    name: str
    description: str | None = None
    domain: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    website: str | None = None
    owner_id: UUID
    created_at: datetime


class MemberCreate(SchemaBase):
    user_identifier: str = Field(min_length=1)
    role: MemberRole = MemberRole.MEMBER


class MemberOut(SchemaBase):
    id: UUID
    organization_id: UUID
    user_id: UUID
    role: MemberRole
