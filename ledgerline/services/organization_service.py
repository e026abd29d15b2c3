"""
Organization membership and access control.

``has_access`` is the single membership predicate every transaction read and
write goes through before touching the store.
"""
import re
import secrets
import uuid
from typing import List, Optional, Union

import structlog
from sqlalchemy.orm import Session

from ledgerline.exceptions import (
    InsufficientPermissionsError,
    MembershipExistsError,
    OrganizationAccessError,
    OrganizationNotFoundError,
    ValidationError,
)
from ledgerline.models.organization import Organization, OrganizationMember, OrganizationRole
from ledgerline.models.types import parse_uuid
from ledgerline.models.user import User

logger = structlog.get_logger(__name__)

IdLike = Union[str, uuid.UUID]

MANAGER_ROLES = (OrganizationRole.OWNER, OrganizationRole.ADMIN)


def slugify(name: str) -> str:
    """Lowercase, hyphen-separated slug of an organization name."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def get_membership(
    db: Session, user_id: IdLike, organization_id: IdLike
) -> Optional[OrganizationMember]:
    """Active membership of a user in an organization, if any."""
    user_uuid = parse_uuid(user_id)
    org_uuid = parse_uuid(organization_id)
    if user_uuid is None or org_uuid is None:
        return None

    return (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == org_uuid,
            OrganizationMember.user_id == user_uuid,
            OrganizationMember.is_active == True,  # noqa: E712
        )
        .first()
    )


def has_access(db: Session, user_id: IdLike, organization_id: IdLike) -> bool:
    """Whether the user is currently an active member of the organization."""
    return get_membership(db, user_id, organization_id) is not None


def require_membership(db: Session, user: User, organization_id: IdLike) -> OrganizationMember:
    """
    Ensure the user may act inside the organization.

    Raises:
        OrganizationAccessError: If the user is not an active member.
    """
    membership = get_membership(db, user.id, organization_id)
    if membership is None:
        logger.warning(
            "organization_access_denied",
            user_id=str(user.id),
            organization_id=str(organization_id),
        )
        raise OrganizationAccessError(str(organization_id))
    return membership


def get_member_organization(db: Session, user: User, organization_id: IdLike) -> Organization:
    """
    Organization lookup for members only.

    Raises:
        OrganizationNotFoundError: If absent or the user is not a member.
    """
    membership = get_membership(db, user.id, organization_id)
    if membership is None:
        raise OrganizationNotFoundError(str(organization_id))
    return membership.organization


def create_organization(
    db: Session,
    name: str,
    creator: User,
    slug: Optional[str] = None,
    description: Optional[str] = None,
) -> Organization:
    """
    Create an organization with the creator as owner.

    The slug is derived from the name when omitted; a random suffix is
    appended when it is already taken.
    """
    slug = slug or slugify(name)
    if not slug:
        raise ValidationError("Organization name must contain letters or digits")

    if db.query(Organization).filter(Organization.slug == slug).first():
        slug = f"{slug}-{secrets.token_hex(3)}"

    organization = Organization(
        id=uuid.uuid4(),
        name=name,
        slug=slug,
        description=description,
    )
    db.add(organization)
    db.flush()

    db.add(
        OrganizationMember(
            id=uuid.uuid4(),
            organization_id=organization.id,
            user_id=creator.id,
            role=OrganizationRole.OWNER,
        )
    )
    db.commit()
    db.refresh(organization)

    logger.info("organization_created", organization_id=str(organization.id), user_id=str(creator.id))
    return organization


def add_member(
    db: Session,
    organization: Organization,
    user: User,
    role: OrganizationRole = OrganizationRole.MEMBER,
) -> OrganizationMember:
    """
    Add a user to an organization.

    A previously deactivated membership is reactivated with the new role.

    Raises:
        MembershipExistsError: If the user is already an active member.
    """
    existing = (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == organization.id,
            OrganizationMember.user_id == user.id,
        )
        .first()
    )

    if existing is not None:
        if existing.is_active:
            raise MembershipExistsError(user.email)
        existing.is_active = True
        existing.role = role
        membership = existing
    else:
        membership = OrganizationMember(
            id=uuid.uuid4(),
            organization_id=organization.id,
            user_id=user.id,
            role=role,
        )
        db.add(membership)

    db.commit()
    db.refresh(membership)

    logger.info(
        "organization_member_added",
        organization_id=str(organization.id),
        user_id=str(user.id),
        role=role.value,
    )
    return membership


def require_manager(membership: OrganizationMember) -> None:
    """
    Raises:
        InsufficientPermissionsError: Unless the member is an owner or admin.
    """
    if membership.role not in MANAGER_ROLES:
        raise InsufficientPermissionsError(required_role="owner or admin")


def list_user_organizations(db: Session, user: User) -> List[Organization]:
    """Organizations the user is an active member of, oldest membership first."""
    memberships = (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.user_id == user.id,
            OrganizationMember.is_active == True,  # noqa: E712
        )
        .order_by(OrganizationMember.joined_at.asc())
        .all()
    )
    return [m.organization for m in memberships]


def list_members(db: Session, organization: Organization) -> List[OrganizationMember]:
    """Active members of an organization."""
    return (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == organization.id,
            OrganizationMember.is_active == True,  # noqa: E712
        )
        .order_by(OrganizationMember.joined_at.asc())
        .all()
    )
