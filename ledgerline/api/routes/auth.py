"""
Authentication API routes.

Provides endpoints for user registration, login, and token management.
"""
import uuid
from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from ledgerline.auth.dependencies import get_current_active_user
from ledgerline.auth.utils import TokenResponse, create_tokens, verify_refresh_token
from ledgerline.core.security import hash_password, validate_password_strength, verify_password
from ledgerline.database import get_db
from ledgerline.exceptions import AuthenticationError, InvalidCredentialsError, ValidationError
from ledgerline.models.types import parse_uuid, utcnow
from ledgerline.models.user import User

logger = structlog.get_logger(__name__)

router = APIRouter()


# Request/Response Models
class RegisterRequest(BaseModel):
    """User registration request."""
    email: EmailStr
    password: str  # Validation done in endpoint for proper error code
    full_name: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """User login request."""
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    """Token refresh request."""
    refresh_token: str


class UserResponse(BaseModel):
    """User profile response."""
    id: str
    email: str
    full_name: Optional[str]
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime]


def _normalize_email(email: str) -> str:
    return email.strip().lower()


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a new user account and return access tokens.",
)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Register a new user and sign them in."""
    try:
        validate_password_strength(request.password)
    except ValidationError as e:
        raise ValidationError(
            message="Password does not meet requirements",
            errors=[{"field": "password", "message": e.message}],
        )

    email = _normalize_email(request.email)
    if db.query(User).filter(User.email == email).first():
        raise ValidationError(
            message="Email already registered",
            errors=[{"field": "email", "message": "This email is already in use"}],
        )

    user = User(
        id=uuid.uuid4(),
        email=email,
        password_hash=hash_password(request.password),
        full_name=request.full_name.strip() if request.full_name else None,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("user_registered", user_id=str(user.id))

    return create_tokens(str(user.id), user.email)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login user",
    description="Authenticate user and return access tokens.",
)
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Login with email and password."""
    user = db.query(User).filter(User.email == _normalize_email(request.email)).first()

    # Same error whether or not the email exists
    if not user or not verify_password(request.password, user.password_hash):
        logger.warning("failed_login_attempt", user_id=str(user.id) if user else None)
        raise InvalidCredentialsError()

    if not user.is_active:
        raise AuthenticationError("Account is disabled")

    user.last_login = utcnow()
    db.commit()

    logger.info("user_login", user_id=str(user.id))

    return create_tokens(str(user.id), user.email)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh access token",
    description="Get new access token using refresh token.",
)
async def refresh_token(
    request: RefreshTokenRequest,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Exchange a refresh token for a new token pair."""
    user_uuid = parse_uuid(verify_refresh_token(request.refresh_token))
    if user_uuid is None:
        raise AuthenticationError("Invalid refresh token")

    user = db.query(User).filter(User.id == user_uuid).first()
    if not user or not user.is_active:
        raise AuthenticationError("Invalid refresh token")

    logger.info("token_refresh", user_id=str(user.id))

    return create_tokens(str(user.id), user.email)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Get profile of currently authenticated user.",
)
async def get_me(
    current_user: User = Depends(get_current_active_user),
) -> UserResponse:
    """Get current user profile."""
    return UserResponse(
        id=str(current_user.id),
        email=current_user.email,
        full_name=current_user.full_name,
        is_active=current_user.is_active,
        created_at=current_user.created_at,
        last_login=current_user.last_login,
    )
