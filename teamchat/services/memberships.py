"""
Workspace and channel membership checks and mutations.

Adding a member is idempotent: an existing row is returned as-is, so callers
can "ensure" membership without checking first. Only channel rows in the
``member`` state grant access; ``pending`` rows are placeholders for an
outstanding channel invite.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamchat.errors import NotFoundError, PermissionDeniedError
from teamchat.models.channel import Channel
from teamchat.models.membership import (
    ChannelMembership,
    ChannelMembershipState,
    Membership,
    MembershipRole,
)
from teamchat.models.user import User
from teamchat.models.workspace import Workspace

logger = logging.getLogger(__name__)


async def get_workspace_membership(db: AsyncSession, user_id: int, workspace_id: int) -> Membership | None:
    result = await db.execute(
        select(Membership).where(
            Membership.workspace_id == workspace_id,
            Membership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def get_channel_membership(db: AsyncSession, user_id: int, channel_id: int) -> ChannelMembership | None:
    result = await db.execute(
        select(ChannelMembership).where(
            ChannelMembership.channel_id == channel_id,
            ChannelMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def is_workspace_member(db: AsyncSession, user_id: int, workspace_id: int) -> bool:
    return await get_workspace_membership(db, user_id, workspace_id) is not None


async def is_channel_member(db: AsyncSession, user_id: int, channel_id: int) -> bool:
    """True only for full channel members, never for pending placeholders."""
    membership = await get_channel_membership(db, user_id, channel_id)
    return membership is not None and not membership.is_pending


async def add_workspace_member(
    db: AsyncSession,
    user_id: int,
    workspace_id: int,
    role: MembershipRole = MembershipRole.MEMBER,
) -> Membership:
    """Ensure the user belongs to the workspace.

    An existing membership keeps its role.
    """
    membership = await get_workspace_membership(db, user_id, workspace_id)
    if membership:
        return membership

    membership = Membership(workspace_id=workspace_id, user_id=user_id, role=role)
    db.add(membership)
    await db.flush()
    logger.info(f"User {user_id} joined workspace {workspace_id} as {role.value}")
    return membership


async def add_channel_member(db: AsyncSession, user_id: int, channel_id: int) -> ChannelMembership:
    """Ensure the user is a full channel member, promoting a pending placeholder."""
    membership = await get_channel_membership(db, user_id, channel_id)
    if membership:
        if membership.is_pending:
            membership.state = ChannelMembershipState.MEMBER
            await db.flush()
            logger.info(f"User {user_id} promoted to member of channel {channel_id}")
        return membership

    membership = ChannelMembership(channel_id=channel_id, user_id=user_id, state=ChannelMembershipState.MEMBER)
    db.add(membership)
    await db.flush()
    logger.info(f"User {user_id} joined channel {channel_id}")
    return membership


async def add_pending_channel_member(db: AsyncSession, user_id: int, channel_id: int) -> ChannelMembership:
    """Create the placeholder row for an invited user; existing rows are left alone."""
    membership = await get_channel_membership(db, user_id, channel_id)
    if membership:
        return membership

    membership = ChannelMembership(channel_id=channel_id, user_id=user_id, state=ChannelMembershipState.PENDING)
    db.add(membership)
    await db.flush()
    return membership


async def remove_pending_channel_member(db: AsyncSession, user_id: int, channel_id: int) -> None:
    membership = await get_channel_membership(db, user_id, channel_id)
    if membership and membership.is_pending:
        await db.delete(membership)
        await db.flush()


async def list_workspace_members(db: AsyncSession, workspace_id: int) -> list[tuple[User, Membership]]:
    """Members with their membership rows, in join order."""
    result = await db.execute(
        select(User, Membership)
        .join(Membership, Membership.user_id == User.id)
        .where(Membership.workspace_id == workspace_id)
        .order_by(Membership.created_at, Membership.id)
    )
    return [(user, membership) for user, membership in result.all()]


async def list_channel_members(db: AsyncSession, channel_id: int) -> list[tuple[User, ChannelMembership]]:
    """Channel rows (full and pending) with their users, in join order."""
    result = await db.execute(
        select(User, ChannelMembership)
        .join(ChannelMembership, ChannelMembership.user_id == User.id)
        .where(ChannelMembership.channel_id == channel_id)
        .order_by(ChannelMembership.created_at, ChannelMembership.id)
    )
    return [(user, membership) for user, membership in result.all()]


async def get_workspace(db: AsyncSession, workspace_id: int) -> Workspace:
    result = await db.execute(select(Workspace).where(Workspace.id == workspace_id))
    workspace = result.scalar_one_or_none()
    if not workspace:
        raise NotFoundError("Workspace not found")
    return workspace


async def get_channel(db: AsyncSession, channel_id: int) -> Channel:
    result = await db.execute(select(Channel).where(Channel.id == channel_id))
    channel = result.scalar_one_or_none()
    if not channel:
        raise NotFoundError("Channel not found")
    return channel


async def require_workspace_member(db: AsyncSession, user: User, workspace_id: int) -> Membership:
    """Return the caller's membership or raise 403."""
    membership = await get_workspace_membership(db, user.id, workspace_id)
    if not membership:
        raise PermissionDeniedError("Forbidden - Not a workspace member")
    return membership


async def require_channel_member(db: AsyncSession, user: User, channel_id: int) -> None:
    if not await is_channel_member(db, user.id, channel_id):
        raise PermissionDeniedError("Forbidden - Not a channel member")
