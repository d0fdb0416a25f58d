"""
Channel management router.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from teamchat.deps import Broadcaster, CurrentUser, DBSession, OptionalUser
from teamchat.errors import InviteAlreadyProcessedError, NotFoundError, PermissionDeniedError
from teamchat.schemas import (
    ChannelCreate,
    ChannelMemberOut,
    ChannelOut,
    InviteCreate,
    UserPublic,
    channel_invite_out,
)
from teamchat.services import accounts, invites, memberships

router = APIRouter(prefix="/channel", tags=["channels"])


@router.post("")
async def create_channel(body: ChannelCreate, user: CurrentUser, db: DBSession):
    channel = await accounts.create_channel(db, user, body.name, body.workspace_id)
    return {"success": True, "channel": ChannelOut.model_validate(channel)}


@router.get("")
async def list_channels(
    user: CurrentUser,
    db: DBSession,
    workspace_id: Annotated[int | None, Query(alias="workspaceId")] = None,
):
    """Channels in a workspace that the caller belongs to or is invited to."""
    channels = await accounts.list_channels(db, user, workspace_id)
    return {
        "success": True,
        "channels": [
            ChannelOut.model_validate(channel).model_copy(update={"membership_state": state})
            for channel, state in channels
        ],
    }


@router.get("/invites")
async def my_channel_invites(user: CurrentUser, db: DBSession):
    """Pending channel invites addressed to the caller."""
    channel_invites, _ = await invites.list_pending_invites_for_user(db, user)
    return {"success": True, "invites": [channel_invite_out(i) for i in channel_invites]}


@router.post("/invite/accept")
async def accept_invite(user: CurrentUser, db: DBSession, token: str | None = None):
    invite, channel = await invites.accept_channel_invite(db, token, user)
    return {
        "success": True,
        "message": "Invite accepted",
        "channel": ChannelOut.model_validate(channel),
        "invite": channel_invite_out(invite),
    }


@router.post("/invite/reject")
async def reject_invite(user: OptionalUser, db: DBSession, token: str | None = None):
    try:
        await invites.reject_channel_invite(db, token, user)
    # Unlike workspace invites, a processed channel invite reads as not found
    except (InviteAlreadyProcessedError, NotFoundError) as e:
        raise NotFoundError("Invite not found or already processed") from e
    return {"success": True, "message": "Invite rejected"}


@router.get("/{channel_id}/members")
async def list_members(channel_id: int, user: CurrentUser, db: DBSession):
    """Members of a channel, visible to channel members and workspace members."""
    channel = await memberships.get_channel(db, channel_id)
    if not (
        await memberships.is_channel_member(db, user.id, channel.id)
        or await memberships.is_workspace_member(db, user.id, channel.workspace_id)
    ):
        raise PermissionDeniedError("Forbidden - Not a channel member")

    members = await memberships.list_channel_members(db, channel.id)
    return {
        "success": True,
        "members": [
            ChannelMemberOut(
                user=UserPublic.model_validate(member),
                state=membership.state,
                joined_at=membership.created_at,
            )
            for member, membership in members
        ],
    }


@router.get("/{channel_id}/invites")
async def list_invites(channel_id: int, user: CurrentUser, db: DBSession):
    channel_invites = await invites.list_invites_for_target(db, user, channel_id=channel_id)
    return {"success": True, "invites": [channel_invite_out(i) for i in channel_invites]}


@router.post("/{channel_id}/invites")
async def create_invite(
    channel_id: int,
    body: InviteCreate,
    user: CurrentUser,
    db: DBSession,
    broadcaster: Broadcaster,
):
    invite = await invites.create_channel_invite(db, user, channel_id, body.email, broadcaster=broadcaster)
    return {"success": True, "message": "Invite sent", "invite": channel_invite_out(invite)}
