"""
Custom exceptions for Ledgerline.

Provides a hierarchy of exceptions with error codes for consistent error handling.
"""
from typing import Any, Dict, Optional


class LedgerlineError(Exception):
    """
    Base exception for all Ledgerline errors.

    Attributes:
        error_code: Unique error code (e.g., LL-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "LL-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(LedgerlineError):
    """Generic resource lookup miss."""
    error_code = "LL-004"
    http_status = 404

    def __init__(self, resource: str, resource_id: str, **kwargs):
        message = f"{resource} not found"
        super().__init__(message, details={"resource": resource, "id": resource_id}, **kwargs)


# Extraction Errors (LL-1XX)
class ExtractionError(LedgerlineError):
    """Error inside an extraction strategy. Never surfaced by the pipeline."""
    error_code = "LL-100"
    http_status = 422

    def __init__(self, message: str = "Failed to extract transaction", **kwargs):
        super().__init__(message, **kwargs)


class AIResponseParseError(ExtractionError):
    """The model response did not contain a JSON object."""
    error_code = "LL-101"

    def __init__(self, message: str = "Could not extract JSON from response", **kwargs):
        super().__init__(message, **kwargs)


# Transaction Errors (LL-2XX)
class TransactionNotFoundError(NotFoundError):
    """Transaction absent, or owned by another organization."""
    error_code = "LL-200"

    def __init__(self, transaction_id: str, **kwargs):
        super().__init__("Transaction", transaction_id, **kwargs)


class InvalidCursorError(LedgerlineError):
    """Pagination cursor does not name a record of the organization."""
    error_code = "LL-201"
    http_status = 400

    def __init__(self, cursor: str, **kwargs):
        super().__init__("Invalid pagination cursor", details={"cursor": cursor}, **kwargs)


# Organization Errors (LL-3XX)
class OrganizationNotFoundError(NotFoundError):
    """Organization not found or caller is not a member."""
    error_code = "LL-300"

    def __init__(self, organization_id: str, **kwargs):
        super().__init__("Organization", organization_id, **kwargs)


class OrganizationAccessError(LedgerlineError):
    """Caller is not a member of the requested organization."""
    error_code = "LL-301"
    http_status = 403

    def __init__(self, organization_id: str, **kwargs):
        message = "You do not have access to this organization"
        super().__init__(message, details={"organization_id": organization_id}, **kwargs)


class MembershipExistsError(LedgerlineError):
    """User is already a member of the organization."""
    error_code = "LL-302"
    http_status = 409

    def __init__(self, email: str, **kwargs):
        message = f"{email} is already a member of this organization"
        super().__init__(message, details={"email": email}, **kwargs)


# Authentication Errors (LL-5XX)
class AuthenticationError(LedgerlineError):
    """Authentication failed."""
    error_code = "LL-500"
    http_status = 401

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, **kwargs)


class InvalidCredentialsError(AuthenticationError):
    """Invalid username or password."""
    error_code = "LL-501"

    def __init__(self, **kwargs):
        super().__init__("Invalid email or password", **kwargs)


class InvalidTokenError(AuthenticationError):
    """Authentication token is invalid or expired."""
    error_code = "LL-502"

    def __init__(self, **kwargs):
        super().__init__("Invalid authentication token", **kwargs)


# Authorization Errors (LL-6XX)
class AuthorizationError(LedgerlineError):
    """User not authorized for this action."""
    error_code = "LL-600"
    http_status = 403

    def __init__(self, message: str = "You do not have permission to perform this action", **kwargs):
        super().__init__(message, **kwargs)


class InsufficientPermissionsError(AuthorizationError):
    """User lacks the organization role required."""
    error_code = "LL-601"

    def __init__(self, required_role: str, **kwargs):
        message = f"Requires {required_role} role"
        super().__init__(message, details={"required_role": required_role}, **kwargs)


# Validation Errors (LL-7XX)
class ValidationError(LedgerlineError):
    """Input validation failed."""
    error_code = "LL-700"
    http_status = 400

    def __init__(self, message: str = "Validation failed", errors: Optional[list] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        details["errors"] = errors or []
        super().__init__(message, details=details, **kwargs)


# Database Errors (LL-8XX)
class DatabaseError(LedgerlineError):
    """Database operation failed."""
    error_code = "LL-800"
    http_status = 500

    def __init__(self, message: str = "Database operation failed", **kwargs):
        super().__init__(message, **kwargs)

