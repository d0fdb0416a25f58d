"""
Invite models for workspace and channel invitations.

An invite moves from pending to exactly one terminal state (accepted or
rejected) and is never deleted. The partial unique indexes keep at most one
pending invite per (email, target) even when two requests race past the
application-level duplicate check.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamchat.db import Base
from teamchat.errors import InviteAlreadyProcessedError
from teamchat.models.base import TimestampMixin, utcnow


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


_PENDING_ONLY = text("status = 'pending'")


class InviteMixin(TimestampMixin):
    """Columns and transitions shared by both invite kinds."""

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    token: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    status: Mapped[InviteStatus] = mapped_column(String(20), default=InviteStatus.PENDING, nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.status == InviteStatus.PENDING

    def _transition(self, new_status: InviteStatus) -> None:
        if not self.is_pending:
            raise InviteAlreadyProcessedError()
        self.status = new_status
        self.responded_at = utcnow()

    def mark_accepted(self) -> None:
        self._transition(InviteStatus.ACCEPTED)

    def mark_rejected(self) -> None:
        self._transition(InviteStatus.REJECTED)


class WorkspaceInvite(Base, InviteMixin):
    """Invitation to join a workspace."""

    __tablename__ = "workspace_invites"
    __table_args__ = (
        Index(
            "uq_workspace_invite_pending",
            "workspace_id",
            "email",
            unique=True,
            postgresql_where=_PENDING_ONLY,
            sqlite_where=_PENDING_ONLY,
        ),
    )

    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inviter_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    workspace = relationship("Workspace")
    inviter = relationship("User", foreign_keys=[inviter_id])

    def __repr__(self) -> str:
        return f"<WorkspaceInvite {self.email} -> workspace={self.workspace_id} status={self.status}>"


class ChannelInvite(Base, InviteMixin):
    """Invitation to join a channel."""

    __tablename__ = "channel_invites"
    __table_args__ = (
        Index(
            "uq_channel_invite_pending",
            "channel_id",
            "email",
            unique=True,
            postgresql_where=_PENDING_ONLY,
            sqlite_where=_PENDING_ONLY,
        ),
    )

    channel_id: Mapped[int] = mapped_column(
        ForeignKey("channels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    inviter_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    channel = relationship("Channel")
    inviter = relationship("User", foreign_keys=[inviter_id])

    def __repr__(self) -> str:
        return f"<ChannelInvite {self.email} -> channel={self.channel_id} status={self.status}>"
