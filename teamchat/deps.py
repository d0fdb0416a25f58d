"""
FastAPI dependencies for authentication, database, and realtime.
"""

import logging
from typing import Annotated

from fastapi import Cookie, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teamchat.db import get_db
from teamchat.errors import AuthenticationError
from teamchat.models.user import User
from teamchat.services.accounts import get_user
from teamchat.services.broadcaster import ConnectionManager, get_broadcaster
from teamchat.services.tokens import read_session_token

logger = logging.getLogger(__name__)

# Type alias for database dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

# Type alias for the realtime broadcaster
Broadcaster = Annotated[ConnectionManager, Depends(get_broadcaster)]


async def resolve_session_user(db: AsyncSession, token: str | None) -> User:
    """Resolve a session token to its user.

    Raises:
        AuthenticationError: token missing, invalid or expired, or user gone.
        ConfigurationError: the signing secret is not configured.
    """
    if not token:
        raise AuthenticationError("Unauthorized")
    user_id = read_session_token(token)
    user = await get_user(db, user_id)
    if not user:
        logger.info(f"Session token refers to missing user {user_id}")
        raise AuthenticationError("User no longer exists")
    return user


async def get_current_user(
    db: DBSession,
    token: str | None = Cookie(default=None),
) -> User:
    """Get current user from the session cookie (raises 401 if not authenticated)."""
    return await resolve_session_user(db, token)


async def get_current_user_optional(
    db: DBSession,
    token: str | None = Cookie(default=None),
) -> User | None:
    """Get current user from the session cookie (returns None if not authenticated)."""
    try:
        return await resolve_session_user(db, token)
    except AuthenticationError:
        return None


# Type alias for authenticated user dependency
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_current_user_optional)]
