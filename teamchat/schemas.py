"""
Request and response schemas.

JSON keys are camelCase on the wire; models accept either spelling on input.
Request fields are optional so that missing values surface as the endpoint's
own 400 message instead of a generic validation error.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from teamchat.models.invite import InviteStatus
from teamchat.models.membership import ChannelMembershipState, MembershipRole


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# -------------------------------------------------------------------------
# Requests
# -------------------------------------------------------------------------

class RegisterRequest(CamelModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class WorkspaceCreate(CamelModel):
    name: str | None = None


class ChannelCreate(CamelModel):
    name: str | None = None
    workspace_id: int | None = None


class InviteCreate(CamelModel):
    email: str | None = None


class InviteAcceptById(CamelModel):
    invite_id: int | None = None


class MessageCreate(CamelModel):
    content: str | None = None


# -------------------------------------------------------------------------
# Responses
# -------------------------------------------------------------------------

class UserSummary(CamelModel):
    """Author block embedded in messages and invites."""
    id: int
    first_name: str
    last_name: str


class UserPublic(UserSummary):
    email: str
    created_at: datetime | None = None


class OrganizationOut(CamelModel):
    id: int
    code: str
    name: str


class WorkspaceOut(CamelModel):
    id: int
    name: str
    color: str
    owner_id: int
    organization_id: int | None = None
    created_at: datetime | None = None


class ChannelOut(CamelModel):
    id: int
    name: str
    slug: str
    workspace_id: int
    created_at: datetime | None = None
    membership_state: ChannelMembershipState | None = None


class MessageOut(CamelModel):
    id: int
    content: str
    created_at: datetime
    user: UserSummary


class WorkspaceMemberOut(CamelModel):
    user: UserPublic
    role: MembershipRole
    joined_at: datetime


class ChannelMemberOut(CamelModel):
    user: UserPublic
    state: ChannelMembershipState
    joined_at: datetime


class InviteOut(CamelModel):
    id: int
    email: str
    token: str
    status: InviteStatus
    inviter_id: int | None = None
    created_at: datetime | None = None
    responded_at: datetime | None = None


class WorkspaceInviteOut(InviteOut):
    workspace_id: int
    workspace_name: str | None = None


class ChannelInviteOut(InviteOut):
    channel_id: int
    channel_name: str | None = None
    workspace_id: int | None = None


def workspace_invite_out(invite) -> WorkspaceInviteOut:
    """Serialize a workspace invite whose ``workspace`` relationship is loaded."""
    return WorkspaceInviteOut.model_validate(invite).model_copy(
        update={"workspace_name": invite.workspace.name}
    )


def channel_invite_out(invite) -> ChannelInviteOut:
    """Serialize a channel invite whose ``channel`` relationship is loaded."""
    return ChannelInviteOut.model_validate(invite).model_copy(
        update={
            "channel_name": invite.channel.name,
            "workspace_id": invite.channel.workspace_id,
        }
    )
