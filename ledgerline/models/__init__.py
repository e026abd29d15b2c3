"""Models package."""
from ledgerline.models.organization import Organization, OrganizationMember, OrganizationRole
from ledgerline.models.transaction import Transaction
from ledgerline.models.user import User

__all__ = [
    "User",
    "Organization", "OrganizationMember", "OrganizationRole",
    "Transaction",
]
