from __future__ import annotations

import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.v1.schemas.organizations import OrganizationCreate
from app.models import Organization, OrganizationMember, User
from app.models.organization import MemberRole
from app.services.authorization import Action, require_organization
from app.services.error_codes import ErrorCode
from app.services.exceptions import ConflictError
from app.services.users import find_user_by_identifier


def create_organization(db: Session, owner: User, payload: OrganizationCreate) -> Organization:
    organization = Organization(**payload.model_dump(), owner_id=owner.id)
    db.add(organization)
    db.commit()
    db.refresh(organization)
    return organization


def add_member(
    db: Session,
    actor: User,
    organization_id: uuid.UUID,
    identifier: str,
    role: MemberRole = MemberRole.MEMBER,
) -> OrganizationMember:
    organization = require_organization(db, actor, organization_id, Action.MANAGE_MEMBERS)
    user = find_user_by_identifier(db, identifier)
    if user.id == organization.owner_id:
        raise ConflictError(ErrorCode.ALREADY_MEMBER.value, "user already owns this organization")

    member = OrganizationMember(organization_id=organization.id, user_id=user.id, role=role)
    db.add(member)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            ErrorCode.ALREADY_MEMBER.value, "user is already a member of this organization"
        ) from exc

    db.refresh(member)
    return member
