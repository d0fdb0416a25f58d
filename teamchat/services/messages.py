"""
Message store: append channel messages and fan them out to subscribers.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamchat.errors import PermissionDeniedError, ValidationError
from teamchat.models.invite import ChannelInvite, InviteStatus
from teamchat.models.membership import MembershipRole
from teamchat.models.message import Message
from teamchat.models.user import User
from teamchat.schemas import MessageOut, UserSummary
from teamchat.services import memberships
from teamchat.services.broadcaster import MESSAGE_SENT, ConnectionManager, channel_topic

logger = logging.getLogger(__name__)


async def has_accepted_invite(db: AsyncSession, user: User, channel_id: int) -> bool:
    result = await db.execute(
        select(ChannelInvite.id).where(
            ChannelInvite.channel_id == channel_id,
            ChannelInvite.email == user.email.lower(),
            ChannelInvite.status == InviteStatus.ACCEPTED,
        )
    )
    return result.first() is not None


async def ensure_can_post(db: AsyncSession, user: User, channel) -> None:
    """Require channel membership, joining users who hold an accepted invite.

    The join is flushed but not committed; it is committed together with the
    message being posted.
    """
    if await memberships.is_channel_member(db, user.id, channel.id):
        return
    if not await has_accepted_invite(db, user, channel.id):
        raise PermissionDeniedError("Forbidden - Not a channel member")

    logger.info(f"Auto-joining user {user.id} to channel {channel.id} via accepted invite")
    await memberships.add_workspace_member(db, user.id, channel.workspace_id, MembershipRole.GUEST)
    await memberships.add_channel_member(db, user.id, channel.id)


def to_public(message: Message, author: User) -> dict[str, Any]:
    """Public projection shared by the HTTP response and the realtime event."""
    return MessageOut(
        id=message.id,
        content=message.content,
        created_at=message.created_at,
        user=UserSummary.model_validate(author),
    ).model_dump(by_alias=True, mode="json")


async def post_message(
    db: AsyncSession,
    broadcaster: ConnectionManager | None,
    channel_id: int,
    user: User,
    content: str | None,
) -> dict[str, Any]:
    """Append a message to a channel and publish it after commit."""
    if not content or not content.strip():
        raise ValidationError("Message cannot be empty")

    channel = await memberships.get_channel(db, channel_id)
    await ensure_can_post(db, user, channel)

    message = Message(channel_id=channel.id, user_id=user.id, content=content)
    db.add(message)
    await db.flush()
    await db.commit()

    payload = to_public(message, user)
    if broadcaster is not None:
        await broadcaster.publish(channel_topic(channel.id), MESSAGE_SENT, payload)
    logger.debug(f"User {user.id} posted message {message.id} to channel {channel.id}")
    return payload


async def list_messages(db: AsyncSession, channel_id: int, user: User) -> list[Message]:
    """Messages of a channel in posting order, with authors loaded."""
    await memberships.require_channel_member(db, user, channel_id)

    result = await db.execute(
        select(Message)
        .where(Message.channel_id == channel_id)
        .options(selectinload(Message.user))
        .order_by(Message.created_at, Message.id)
    )
    return list(result.scalars().all())
