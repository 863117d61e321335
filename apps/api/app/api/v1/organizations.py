from uuid import UUID

from fastapi import APIRouter

from app.api.v1.schemas import (
    Envelope,
    MemberCreate,
    MemberOut,
    OrganizationCreate,
    OrganizationOut,
)
from app.auth.deps import CurrentUser, DBSession
from app.services.organizations_service import add_member, create_organization

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.post("", response_model=Envelope[OrganizationOut], status_code=201)
def create(payload: OrganizationCreate, user: CurrentUser, db: DBSession):
    organization = create_organization(db, user, payload)
    return Envelope(
        message="Organization created",
        data=OrganizationOut.model_validate(organization),
    )


@router.post(
    "/{organization_id}/members", response_model=Envelope[MemberOut], status_code=201
)
def add_organization_member(
    organization_id: UUID, payload: MemberCreate, user: CurrentUser, db: DBSession
):
    member = add_member(db, user, organization_id, payload.user_identifier, payload.role)
    return Envelope(message="Member added", data=MemberOut.model_validate(member))
