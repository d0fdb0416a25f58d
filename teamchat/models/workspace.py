"""
Workspace model for multi-tenant collaboration.
"""

import secrets

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamchat.db import Base
from teamchat.models.base import TimestampMixin


def generate_workspace_color() -> str:
    """Pick a random icon color."""
    return f"hsl({secrets.randbelow(360)}, 70%, 50%)"


class Workspace(Base, TimestampMixin):
    """Workspace (team) model."""

    __tablename__ = "workspaces"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False, default=generate_workspace_color)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id: Mapped[int | None] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    owner = relationship("User")
    organization = relationship("Organization", back_populates="workspaces")
    memberships = relationship("Membership", back_populates="workspace", lazy="raise")
    channels = relationship("Channel", back_populates="workspace", lazy="raise")

    def __repr__(self) -> str:
        return f"<Workspace {self.id} {self.name}>"
