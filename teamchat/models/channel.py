"""
Channel model for chat channels.
"""

import re
import secrets
import string

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamchat.db import Base
from teamchat.models.base import TimestampMixin


def slugify(name: str) -> str:
    """Convert name to URL-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug).strip("-")
    return slug[:80] or "channel"


def generate_channel_slug(name: str) -> str:
    """Slugified name plus a random suffix, e.g. ``general-4k2j9x``."""
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(6))
    return f"{slugify(name)}-{suffix}"


class Channel(Base, TimestampMixin):
    """Channel model for chat."""

    __tablename__ = "channels"

    id: Mapped[int] = mapped_column(primary_key=True)
    workspace_id: Mapped[int] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(80), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    # Relationships
    workspace = relationship("Workspace", back_populates="channels")
    messages = relationship("Message", back_populates="channel", lazy="raise", order_by="Message.created_at")
    memberships = relationship("ChannelMembership", back_populates="channel", lazy="raise")

    def __repr__(self) -> str:
        return f"<Channel #{self.name}>"
