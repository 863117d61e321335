"""Who may act on behalf of an organization.

Every admin-scoped operation asks the same question through ``is_allowed``:
may ``actor`` perform ``action`` on resources owned by this organization?
Platform admins may do anything. Owners may do anything in their own
organization. Members may run events, but only member-admins may change the
member list.
"""

from __future__ import annotations

import uuid
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import Event, Organization, OrganizationMember, User
from app.models.organization import MemberRole
from app.models.user import UserRole
from app.services.error_codes import ErrorCode
from app.services.exceptions import NotFoundError, PermissionDeniedError


class Action(str, Enum):
    MANAGE_EVENT = "manage_event"
    VIEW_ATTENDEES = "view_attendees"
    CHECK_IN = "check_in"
    REDEEM_COUPON = "redeem_coupon"
    NOTIFY = "notify"
    MANAGE_MEMBERS = "manage_members"


_MEMBER_ACTIONS = frozenset(
    {
        Action.MANAGE_EVENT,
        Action.VIEW_ATTENDEES,
        Action.CHECK_IN,
        Action.REDEEM_COUPON,
        Action.NOTIFY,
    }
)


def _membership(db: Session, actor: User, organization_id: uuid.UUID) -> OrganizationMember | None:
    return db.scalar(
        select(OrganizationMember).where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == actor.id,
        )
    )


def is_allowed(db: Session, actor: User, organization: Organization, action: Action) -> bool:
    if actor.role == UserRole.ADMIN:
        return True
    if organization.owner_id == actor.id:
        return True

    membership = _membership(db, actor, organization.id)
    if membership is None:
        return False
    if action in _MEMBER_ACTIONS:
        return True
    return membership.role == MemberRole.ADMIN


def require_organization(
    db: Session, actor: User, organization_id: uuid.UUID, action: Action
) -> Organization:
    organization = db.get(Organization, organization_id)
    if organization is None:
        raise NotFoundError(ErrorCode.ORGANIZATION_NOT_FOUND.value, "organization not found")
    if is_allowed(db, actor, organization, action):
        return organization

    # Outsiders cannot learn that the organization exists
    if _membership(db, actor, organization.id) is None:
        raise NotFoundError(ErrorCode.ORGANIZATION_NOT_FOUND.value, "organization not found")
    raise PermissionDeniedError(
        ErrorCode.NOT_ORGANIZATION_ADMIN.value,
        "only organization owners and admins can do this",
    )


def require_event(db: Session, actor: User, event_id: uuid.UUID, action: Action) -> Event:
    """Load an event the actor may act on.

    Missing events and events of other organizations raise the same
    ``NotFoundError`` so callers cannot probe for foreign event ids.
    """
    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")

    organization = db.get(Organization, event.organization_id)
    if organization is None or not is_allowed(db, actor, organization, action):
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    return event
