"""
Message model for chat messages.
"""

from sqlalchemy import ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamchat.db import Base
from teamchat.models.base import TimestampMixin


class Message(Base, TimestampMixin):
    """Message model for chat. Append-only."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_channel_created", "channel_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    channel_id: Mapped[int] = mapped_column(ForeignKey("channels.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Rich text (HTML) as produced by the client editor
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Relationships
    channel = relationship("Channel", back_populates="messages")
    user = relationship("User", back_populates="messages")

    def __repr__(self) -> str:
        return f"<Message {self.id} by user {self.user_id}>"
