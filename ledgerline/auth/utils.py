"""
JWT token helpers.

Access tokens carry the user id and email; refresh tokens only the user id.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from ledgerline.config import get_settings


class TokenData(BaseModel):
    """Token payload data."""
    user_id: str
    email: str
    token_type: str = "access"


class TokenResponse(BaseModel):
    """Token response for API."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    user_id: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User's UUID as string
        email: User's email address
        expires_delta: Optional custom expiration

    Returns:
        Encoded JWT token
    """
    settings = get_settings()
    expire = _now() + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))

    payload = {
        "sub": user_id,
        "email": email,
        "type": "access",
        "exp": expire,
        "iat": _now(),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT refresh token."""
    settings = get_settings()
    expire = _now() + (expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days))

    payload = {
        "sub": user_id,
        "type": "refresh",
        "exp": expire,
        "iat": _now(),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_tokens(user_id: str, email: str) -> TokenResponse:
    """Create access and refresh tokens for a user."""
    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(user_id, email),
        refresh_token=create_refresh_token(user_id),
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT token.

    Returns:
        Token payload if valid, None otherwise
    """
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[TokenData]:
    """Verify an access token and return its data, or None."""
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None

    try:
        return TokenData(user_id=payload["sub"], email=payload["email"], token_type="access")
    except KeyError:
        return None


def verify_refresh_token(token: str) -> Optional[str]:
    """Verify a refresh token and return the user ID, or None."""
    payload = decode_token(token)
    if not payload or payload.get("type") != "refresh":
        return None
    return payload.get("sub")
