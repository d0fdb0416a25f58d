"""
Invite engine: issue, accept and reject workspace and channel invites.

Every mutating operation commits exactly once, so the invite row and the
membership rows it implies land together or not at all. Realtime events and
emails go out only after that commit.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from teamchat.errors import (
    ConflictError,
    InviteAlreadyProcessedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from teamchat.models.channel import Channel
from teamchat.models.invite import ChannelInvite, InviteStatus, WorkspaceInvite
from teamchat.models.membership import MembershipRole
from teamchat.models.user import User
from teamchat.models.workspace import Workspace
from teamchat.schemas import UserSummary
from teamchat.services import memberships
from teamchat.services.broadcaster import (
    INVITE_SENT,
    WORKSPACE_INVITE,
    ConnectionManager,
    channel_topic,
    user_topic,
)
from teamchat.services.email import send_invite_email
from teamchat.services.tokens import create_invite_token, read_invite_token

logger = logging.getLogger(__name__)

DUPLICATE_INVITE = "User already has a pending invite"


def normalize_email(email: str | None) -> str:
    """Lower-case and syntax-check an invitee email."""
    if not email or not email.strip():
        raise ValidationError("Email is required")
    try:
        validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError("Valid invitee email is required") from e
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


def _check_invitee(invite, user: User | None) -> None:
    if user is not None and user.email.lower() != invite.email.lower():
        raise PermissionDeniedError("Invite not meant for this user")


async def _flush_new_invite(db: AsyncSession, invite) -> None:
    db.add(invite)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race against another request for the same (email, target)
        logger.info(f"Pending invite insert rejected by unique index: {e.orig}")
        raise ConflictError(DUPLICATE_INVITE) from e


async def _notify_invite(
    broadcaster: ConnectionManager | None,
    invite,
    invitee: User,
    inviter: User,
    target_name: str,
    sent_topic: str,
    target: dict,
) -> None:
    """Publish invite events and send the invite email, best-effort."""
    if broadcaster is not None:
        payload = {
            "inviteId": invite.id,
            "email": invite.email,
            "token": invite.token,
            "name": target_name,
            "inviter": UserSummary.model_validate(inviter).model_dump(by_alias=True),
            **target,
        }
        await broadcaster.publish(user_topic(invitee.id), WORKSPACE_INVITE, payload)
        await broadcaster.publish(sent_topic, INVITE_SENT, {"inviteId": invite.id, "email": invite.email, **target})

    await send_invite_email(
        to_email=invite.email,
        invite_token=invite.token,
        target_name=target_name,
        inviter_name=inviter.full_name or inviter.email,
    )


# -------------------------------------------------------------------------
# Issue
# -------------------------------------------------------------------------

async def create_workspace_invite(
    db: AsyncSession,
    inviter: User,
    workspace_id: int,
    email: str | None,
    *,
    broadcaster: ConnectionManager | None = None,
) -> WorkspaceInvite:
    """Invite an existing user to a workspace."""
    email = normalize_email(email)
    workspace = await memberships.get_workspace(db, workspace_id)
    await memberships.require_workspace_member(db, inviter, workspace.id)

    invitee = await get_user_by_email(db, email)
    if not invitee:
        raise NotFoundError("User not found")
    if await memberships.is_workspace_member(db, invitee.id, workspace.id):
        raise ConflictError("User is already a member of this workspace")

    result = await db.execute(
        select(WorkspaceInvite.id).where(
            WorkspaceInvite.workspace_id == workspace.id,
            WorkspaceInvite.email == email,
            WorkspaceInvite.status == InviteStatus.PENDING,
        )
    )
    if result.first():
        raise ConflictError(DUPLICATE_INVITE)

    invite = WorkspaceInvite(
        workspace_id=workspace.id,
        workspace=workspace,
        inviter_id=inviter.id,
        email=email,
        token=create_invite_token(email, workspace_id=workspace.id),
        status=InviteStatus.PENDING,
    )
    await _flush_new_invite(db, invite)
    await db.commit()
    logger.info(f"User {inviter.id} invited {email} to workspace {workspace.id}")

    await _notify_invite(
        broadcaster,
        invite,
        invitee,
        inviter,
        workspace.name,
        user_topic(inviter.id),
        {"type": "workspace", "workspaceId": workspace.id},
    )
    return invite


async def create_channel_invite(
    db: AsyncSession,
    inviter: User,
    channel_id: int,
    email: str | None,
    *,
    broadcaster: ConnectionManager | None = None,
) -> ChannelInvite:
    """Invite an existing user to a channel.

    Also records a pending channel membership for the invitee so the channel
    shows up in their channel list before they answer.
    """
    email = normalize_email(email)
    channel = await memberships.get_channel(db, channel_id)
    await memberships.require_workspace_member(db, inviter, channel.workspace_id)

    invitee = await get_user_by_email(db, email)
    if not invitee:
        raise NotFoundError("User not found")
    if await memberships.is_channel_member(db, invitee.id, channel.id):
        raise ConflictError("User is already a member of this channel")

    result = await db.execute(
        select(ChannelInvite.id).where(
            ChannelInvite.channel_id == channel.id,
            ChannelInvite.email == email,
            ChannelInvite.status == InviteStatus.PENDING,
        )
    )
    if result.first():
        raise ConflictError(DUPLICATE_INVITE)

    invite = ChannelInvite(
        channel_id=channel.id,
        channel=channel,
        inviter_id=inviter.id,
        email=email,
        token=create_invite_token(email, channel_id=channel.id),
        status=InviteStatus.PENDING,
    )
    await _flush_new_invite(db, invite)
    await memberships.add_pending_channel_member(db, invitee.id, channel.id)
    await db.commit()
    logger.info(f"User {inviter.id} invited {email} to channel {channel.id}")

    await _notify_invite(
        broadcaster,
        invite,
        invitee,
        inviter,
        channel.name,
        channel_topic(channel.id),
        {"type": "channel", "channelId": channel.id, "workspaceId": channel.workspace_id},
    )
    return invite


# -------------------------------------------------------------------------
# Respond
# -------------------------------------------------------------------------

async def _load_channel_invite(db: AsyncSession, token: str | None) -> ChannelInvite:
    claims = read_invite_token(token)
    result = await db.execute(
        select(ChannelInvite)
        .where(ChannelInvite.token == token)
        .options(selectinload(ChannelInvite.channel))
    )
    invite = result.scalar_one_or_none()
    if (
        not invite
        or claims.get("channel_id") != invite.channel_id
        or claims["email"].lower() != invite.email
    ):
        raise NotFoundError("Invite not found")
    return invite


async def _load_workspace_invite(db: AsyncSession, token: str | None) -> WorkspaceInvite:
    claims = read_invite_token(token)
    result = await db.execute(
        select(WorkspaceInvite)
        .where(WorkspaceInvite.token == token)
        .options(selectinload(WorkspaceInvite.workspace))
    )
    invite = result.scalar_one_or_none()
    if (
        not invite
        or claims.get("workspace_id") != invite.workspace_id
        or claims["email"].lower() != invite.email
    ):
        raise NotFoundError("Invite not found")
    return invite


async def accept_channel_invite(db: AsyncSession, token: str | None, user: User) -> tuple[ChannelInvite, Channel]:
    """Accept a channel invite, joining its workspace as guest if needed."""
    invite = await _load_channel_invite(db, token)
    if not invite.is_pending:
        raise InviteAlreadyProcessedError()
    _check_invitee(invite, user)

    channel = invite.channel
    await memberships.add_workspace_member(db, user.id, channel.workspace_id, MembershipRole.GUEST)
    await memberships.add_channel_member(db, user.id, channel.id)
    invite.mark_accepted()
    await db.commit()
    logger.info(f"User {user.id} accepted invite {invite.id} to channel {channel.id}")
    return invite, channel


async def _complete_workspace_invite(db: AsyncSession, invite: WorkspaceInvite, user: User) -> Workspace:
    if not invite.is_pending:
        raise InviteAlreadyProcessedError()
    _check_invitee(invite, user)

    await memberships.add_workspace_member(db, user.id, invite.workspace_id, MembershipRole.MEMBER)
    invite.mark_accepted()
    await db.commit()
    logger.info(f"User {user.id} accepted invite {invite.id} to workspace {invite.workspace_id}")
    return invite.workspace


async def accept_workspace_invite(
    db: AsyncSession, token: str | None, user: User
) -> tuple[WorkspaceInvite, Workspace]:
    invite = await _load_workspace_invite(db, token)
    workspace = await _complete_workspace_invite(db, invite, user)
    return invite, workspace


async def accept_workspace_invite_by_id(
    db: AsyncSession,
    workspace_id: int,
    invite_id: int | None,
    user: User,
) -> tuple[WorkspaceInvite, Workspace]:
    """Accept a workspace invite addressed by id instead of token."""
    if not invite_id:
        raise ValidationError("Invite ID is required")
    result = await db.execute(
        select(WorkspaceInvite)
        .where(WorkspaceInvite.id == invite_id)
        .options(selectinload(WorkspaceInvite.workspace))
    )
    invite = result.scalar_one_or_none()
    if not invite:
        raise NotFoundError("Invite not found")
    if invite.workspace_id != workspace_id:
        raise ValidationError("Invite does not belong to this workspace")
    workspace = await _complete_workspace_invite(db, invite, user)
    return invite, workspace


async def reject_channel_invite(db: AsyncSession, token: str | None, user: User | None = None) -> ChannelInvite:
    """Reject a channel invite and drop the invitee's pending placeholder."""
    invite = await _load_channel_invite(db, token)
    if not invite.is_pending:
        raise InviteAlreadyProcessedError()
    _check_invitee(invite, user)

    invite.mark_rejected()
    invitee = user or await get_user_by_email(db, invite.email)
    if invitee:
        await memberships.remove_pending_channel_member(db, invitee.id, invite.channel_id)
    await db.commit()
    logger.info(f"Invite {invite.id} to channel {invite.channel_id} rejected")
    return invite


async def reject_workspace_invite(db: AsyncSession, token: str | None, user: User | None = None) -> WorkspaceInvite:
    invite = await _load_workspace_invite(db, token)
    if not invite.is_pending:
        raise InviteAlreadyProcessedError()
    _check_invitee(invite, user)

    invite.mark_rejected()
    await db.commit()
    logger.info(f"Invite {invite.id} to workspace {invite.workspace_id} rejected")
    return invite


# -------------------------------------------------------------------------
# Listing
# -------------------------------------------------------------------------

async def list_pending_invites_for_user(
    db: AsyncSession, user: User
) -> tuple[list[ChannelInvite], list[WorkspaceInvite]]:
    """Pending invites addressed to the user's email, newest first."""
    channel_result = await db.execute(
        select(ChannelInvite)
        .where(
            ChannelInvite.email == user.email.lower(),
            ChannelInvite.status == InviteStatus.PENDING,
        )
        .options(selectinload(ChannelInvite.channel))
        .order_by(ChannelInvite.created_at.desc(), ChannelInvite.id.desc())
    )
    workspace_result = await db.execute(
        select(WorkspaceInvite)
        .where(
            WorkspaceInvite.email == user.email.lower(),
            WorkspaceInvite.status == InviteStatus.PENDING,
        )
        .options(selectinload(WorkspaceInvite.workspace))
        .order_by(WorkspaceInvite.created_at.desc(), WorkspaceInvite.id.desc())
    )
    return list(channel_result.scalars().all()), list(workspace_result.scalars().all())


async def list_invites_for_target(
    db: AsyncSession,
    user: User,
    *,
    workspace_id: int | None = None,
    channel_id: int | None = None,
) -> list[WorkspaceInvite] | list[ChannelInvite]:
    """All invites for one workspace or channel, newest first.

    The caller must belong to the workspace that owns the target.
    """
    if channel_id is not None:
        channel = await memberships.get_channel(db, channel_id)
        await memberships.require_workspace_member(db, user, channel.workspace_id)
        stmt = (
            select(ChannelInvite)
            .where(ChannelInvite.channel_id == channel.id)
            .options(selectinload(ChannelInvite.channel))
            .order_by(ChannelInvite.created_at.desc(), ChannelInvite.id.desc())
        )
    elif workspace_id is not None:
        workspace = await memberships.get_workspace(db, workspace_id)
        await memberships.require_workspace_member(db, user, workspace.id)
        stmt = (
            select(WorkspaceInvite)
            .where(WorkspaceInvite.workspace_id == workspace.id)
            .options(selectinload(WorkspaceInvite.workspace))
            .order_by(WorkspaceInvite.created_at.desc(), WorkspaceInvite.id.desc())
        )
    else:
        raise ValueError("workspace_id or channel_id is required")

    result = await db.execute(stmt)
    return list(result.scalars().all())
