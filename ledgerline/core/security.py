"""
Password hashing with bcrypt.
"""
from typing import Union

import bcrypt

from ledgerline.exceptions import ValidationError

# bcrypt maximum accepted password length in bytes
MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 8


def _to_bytes(password: Union[str, bytes]) -> bytes:
    if isinstance(password, bytes):
        return password
    return password.encode("utf-8")


def validate_password_strength(password: str) -> None:
    """
    Raise ValidationError if the password is too weak or too long for bcrypt.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(_to_bytes(password)) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    if not (any(c.isalpha() for c in password) and any(c.isdigit() for c in password)):
        raise ValidationError("Password must contain at least one letter and one digit")


def hash_password(password: str) -> str:
    """Hash password using bcrypt."""
    hashed = bcrypt.hashpw(_to_bytes(password)[:MAX_PASSWORD_BYTES], bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against hashed value."""
    try:
        return bcrypt.checkpw(_to_bytes(password)[:MAX_PASSWORD_BYTES], hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
