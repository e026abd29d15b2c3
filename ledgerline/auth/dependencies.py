"""
Authentication dependencies for FastAPI routes.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ledgerline.auth.utils import verify_access_token
from ledgerline.database import get_db
from ledgerline.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError
from ledgerline.models.types import parse_uuid
from ledgerline.models.user import User

# HTTP Bearer token extractor
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Get the current authenticated user from JWT token.

    The user is also stored on ``request.state.user`` so the rate limiter
    can key on it.

    Raises:
        AuthenticationError: If no token provided
        InvalidTokenError: If token is invalid or the user no longer exists
    """
    if not credentials:
        raise AuthenticationError("Authentication required")

    token_data = verify_access_token(credentials.credentials)
    if not token_data:
        raise InvalidTokenError()

    user_id = parse_uuid(token_data.user_id)
    user = db.query(User).filter(User.id == user_id).first() if user_id else None
    if not user:
        raise InvalidTokenError()

    request.state.user = user
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Get the current active user.

    Raises:
        AuthorizationError: If user is inactive
    """
    if not current_user.is_active:
        raise AuthorizationError("User account is disabled")
    return current_user
