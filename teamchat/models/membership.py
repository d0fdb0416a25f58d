"""
Membership models for workspace and channel memberships.
"""

from enum import Enum

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamchat.db import Base
from teamchat.models.base import TimestampMixin


class MembershipRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"
    GUEST = "guest"


class ChannelMembershipState(str, Enum):
    """A channel membership is either full, or a placeholder for a pending invite."""
    MEMBER = "member"
    PENDING = "pending"


class Membership(Base, TimestampMixin):
    """Workspace membership model."""

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_membership_workspace_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    workspace_id: Mapped[int] = mapped_column(ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[MembershipRole] = mapped_column(String(20), default=MembershipRole.MEMBER, nullable=False)

    # Relationships
    workspace = relationship("Workspace", back_populates="memberships")
    user = relationship("User", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<Membership user={self.user_id} workspace={self.workspace_id} role={self.role}>"


class ChannelMembership(Base, TimestampMixin):
    """Channel membership model."""

    __tablename__ = "channel_memberships"
    __table_args__ = (
        UniqueConstraint("channel_id", "user_id", name="uq_channel_membership_channel_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    channel_id: Mapped[int] = mapped_column(ForeignKey("channels.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    state: Mapped[ChannelMembershipState] = mapped_column(
        String(20), default=ChannelMembershipState.MEMBER, nullable=False
    )

    # Relationships
    channel = relationship("Channel", back_populates="memberships")
    user = relationship("User")

    @property
    def is_pending(self) -> bool:
        return self.state == ChannelMembershipState.PENDING

    def __repr__(self) -> str:
        return f"<ChannelMembership user={self.user_id} channel={self.channel_id} state={self.state}>"
