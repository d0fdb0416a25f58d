"""
Password hashing and verification using bcrypt.
"""

import bcrypt

from teamchat.errors import ValidationError


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    # bcrypt has a 72-byte limit, truncate if needed
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    password_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


def validate_password(password: str, min_length: int = 8) -> None:
    """Raise ValidationError if the password is too weak."""
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")
