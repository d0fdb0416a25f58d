"""
Signed JWT tokens for sessions and invitations.

Session tokens prove who the caller is; invite tokens prove that an
invitation for (email, target) was issued by this server. Neither is trusted
for current state: membership and invite status are always re-read from the
database when a token is used.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from teamchat.errors import AuthenticationError, ConfigurationError, ValidationError
from teamchat.settings import settings

logger = logging.getLogger(__name__)

SESSION_TOKEN_TYPE = "session"
INVITE_TOKEN_TYPE = "invite"


class TokenError(Exception):
    """Token is malformed, expired, wrongly signed or of the wrong type."""


def _get_secret() -> str:
    secret = settings.jwt_secret
    if not secret:
        logger.error("JWT_SECRET is not configured; cannot sign or verify tokens")
        raise ConfigurationError()
    return secret


def encode_token(claims: dict[str, Any], token_type: str, expires_in: timedelta) -> str:
    """Sign ``claims`` with the server secret, adding type and expiry."""
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "typ": token_type,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, _get_secret(), algorithm=settings.jwt_algorithm)


def decode_token(token: str, token_type: str) -> dict[str, Any]:
    """Verify signature, expiry and type; return the claims.

    Raises:
        ConfigurationError: the server secret is missing.
        TokenError: the token cannot be trusted.
    """
    secret = _get_secret()
    try:
        claims = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        raise TokenError(str(e)) from e
    if claims.get("typ") != token_type:
        raise TokenError(f"expected a {token_type} token")
    return claims


def create_session_token(user) -> str:
    """Issue the session token stored in the ``token`` cookie."""
    return encode_token(
        {"sub": str(user.id), "email": user.email},
        SESSION_TOKEN_TYPE,
        timedelta(hours=settings.session_expire_hours),
    )


def read_session_token(token: str) -> int:
    """Return the user id carried by a session token."""
    try:
        claims = decode_token(token, SESSION_TOKEN_TYPE)
        return int(claims["sub"])
    except (TokenError, KeyError, ValueError) as e:
        logger.info(f"Rejected session token: {e}")
        raise AuthenticationError("Invalid or expired token") from e


def create_invite_token(email: str, *, workspace_id: int | None = None, channel_id: int | None = None) -> str:
    """Issue an invite token bound to an email and exactly one target."""
    if (workspace_id is None) == (channel_id is None):
        raise ValueError("exactly one of workspace_id or channel_id is required")
    # jti keeps tokens unique when the same invite is re-issued within a second
    claims: dict[str, Any] = {"email": email, "jti": secrets.token_hex(8)}
    if workspace_id is not None:
        claims["workspace_id"] = workspace_id
    else:
        claims["channel_id"] = channel_id
    return encode_token(claims, INVITE_TOKEN_TYPE, timedelta(days=settings.invite_expire_days))


def read_invite_token(token: str | None) -> dict[str, Any]:
    """Verify an invite token and return its claims."""
    if not token:
        raise ValidationError("Missing invite token")
    try:
        claims = decode_token(token, INVITE_TOKEN_TYPE)
    except TokenError as e:
        logger.info(f"Rejected invite token: {e}")
        raise ValidationError("Invalid or expired invite token") from e
    if "email" not in claims:
        raise ValidationError("Invalid or expired invite token")
    return claims
