"""
Organization API routes.

Provides endpoints for organization creation, lookup and membership.
"""
import re
from datetime import datetime
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from ledgerline.auth.dependencies import get_current_active_user
from ledgerline.database import get_db
from ledgerline.exceptions import NotFoundError
from ledgerline.models.organization import Organization, OrganizationMember, OrganizationRole
from ledgerline.models.user import User
from ledgerline.services import organization_service

logger = structlog.get_logger(__name__)

router = APIRouter()


# =============================================================================
# Request/Response Models
# =============================================================================

class CreateOrganizationRequest(BaseModel):
    """Request to create a new organization."""
    name: str = Field(..., min_length=2, max_length=255)
    slug: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        if not re.match(r"^[a-z0-9-]+$", v):
            raise ValueError("Slug can only contain lowercase letters, numbers, and hyphens")
        return v


class OrganizationResponse(BaseModel):
    """Organization response."""
    id: str
    name: str
    slug: str
    description: Optional[str]
    is_active: bool
    member_count: int
    created_at: datetime


class AddMemberRequest(BaseModel):
    """Request to add an existing user to an organization."""
    email: EmailStr
    role: OrganizationRole = OrganizationRole.MEMBER

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: OrganizationRole) -> OrganizationRole:
        if v == OrganizationRole.OWNER:
            raise ValueError("Role must be one of: admin, member")
        return v


class MemberResponse(BaseModel):
    """Organization member response."""
    id: str
    user_id: str
    email: str
    full_name: Optional[str]
    role: str
    is_active: bool
    joined_at: datetime


def _organization_response(db: Session, org: Organization) -> OrganizationResponse:
    return OrganizationResponse(
        id=str(org.id),
        name=org.name,
        slug=org.slug,
        description=org.description,
        is_active=org.is_active,
        member_count=len(organization_service.list_members(db, org)),
        created_at=org.created_at,
    )


def _member_response(membership: OrganizationMember) -> MemberResponse:
    return MemberResponse(
        id=str(membership.id),
        user_id=str(membership.user_id),
        email=membership.user.email,
        full_name=membership.user.full_name,
        role=membership.role.value,
        is_active=membership.is_active,
        joined_at=membership.joined_at,
    )


# =============================================================================
# Organization Endpoints
# =============================================================================

@router.post(
    "",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create organization",
    description="Create a new organization. The creating user becomes the owner.",
)
async def create_organization(
    request: CreateOrganizationRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> OrganizationResponse:
    """Create a new organization."""
    org = organization_service.create_organization(
        db,
        name=request.name,
        creator=current_user,
        slug=request.slug,
        description=request.description,
    )
    return _organization_response(db, org)


@router.get(
    "",
    response_model=List[OrganizationResponse],
    summary="List user's organizations",
    description="Get all organizations the current user is a member of.",
)
async def list_organizations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[OrganizationResponse]:
    """List organizations user belongs to."""
    return [
        _organization_response(db, org)
        for org in organization_service.list_user_organizations(db, current_user)
    ]


@router.get(
    "/{org_id}",
    response_model=OrganizationResponse,
    summary="Get organization",
    description="Get organization details. User must be a member.",
)
async def get_organization(
    org_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> OrganizationResponse:
    """Get organization by ID."""
    org = organization_service.get_member_organization(db, current_user, org_id)
    return _organization_response(db, org)


# =============================================================================
# Member Management Endpoints
# =============================================================================

@router.get(
    "/{org_id}/members",
    response_model=List[MemberResponse],
    summary="List organization members",
    description="Get all active members of an organization.",
)
async def list_members(
    org_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> List[MemberResponse]:
    """List organization members."""
    org = organization_service.get_member_organization(db, current_user, org_id)
    return [_member_response(m) for m in organization_service.list_members(db, org)]


@router.post(
    "/{org_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add organization member",
    description="Add a registered user by email. Requires owner or admin role.",
)
async def add_member(
    org_id: str,
    request: AddMemberRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MemberResponse:
    """Add a member to an organization."""
    org = organization_service.get_member_organization(db, current_user, org_id)
    organization_service.require_manager(
        organization_service.get_membership(db, current_user.id, org.id)
    )

    user = db.query(User).filter(User.email == request.email.strip().lower()).first()
    if user is None:
        raise NotFoundError("User", request.email)

    membership = organization_service.add_member(db, org, user, request.role)
    return _member_response(membership)
