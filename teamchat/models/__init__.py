# Models package
from teamchat.db import Base
from teamchat.models.user import User
from teamchat.models.organization import Organization
from teamchat.models.workspace import Workspace
from teamchat.models.channel import Channel
from teamchat.models.membership import (
    ChannelMembership,
    ChannelMembershipState,
    Membership,
    MembershipRole,
)
from teamchat.models.invite import ChannelInvite, InviteStatus, WorkspaceInvite
from teamchat.models.message import Message

__all__ = [
    "Base",
    "User",
    "Organization",
    "Workspace",
    "Channel",
    "Membership",
    "MembershipRole",
    "ChannelMembership",
    "ChannelMembershipState",
    "WorkspaceInvite",
    "ChannelInvite",
    "InviteStatus",
    "Message",
]
