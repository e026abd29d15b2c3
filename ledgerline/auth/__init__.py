"""
Authentication module initialization.
"""
from ledgerline.auth.utils import (
    create_access_token,
    create_refresh_token,
    create_tokens,
    decode_token,
    verify_access_token,
    verify_refresh_token,
    TokenData,
    TokenResponse,
)
from ledgerline.core.security import hash_password, verify_password
from ledgerline.auth.dependencies import get_current_user, get_current_active_user

__all__ = [
    "create_access_token",
    "create_refresh_token",
    "create_tokens",
    "decode_token",
    "hash_password",
    "verify_password",
    "verify_access_token",
    "verify_refresh_token",
    "TokenData",
    "TokenResponse",
    "get_current_user",
    "get_current_active_user",
]
