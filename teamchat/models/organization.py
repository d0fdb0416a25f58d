"""
Organization model. Every registered user owns one.
"""

import secrets
import string

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamchat.db import Base
from teamchat.models.base import TimestampMixin


def generate_org_code(first_name: str) -> str:
    """Generate a human-readable organization code, e.g. ``org_alice_k3x9qa``."""
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(6))
    prefix = "".join(ch for ch in first_name.lower() if ch.isalnum()) or "user"
    return f"org_{prefix}_{suffix}"


class Organization(Base, TimestampMixin):
    """Organization owned by a single user."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    owner = relationship("User", back_populates="organizations")
    workspaces = relationship("Workspace", back_populates="organization", lazy="raise")

    @classmethod
    def for_owner(cls, owner) -> "Organization":
        """Build the default organization for a newly registered user."""
        return cls(
            code=generate_org_code(owner.first_name),
            name=f"{owner.first_name or 'User'}'s Organization",
            owner_id=owner.id,
        )

    def __repr__(self) -> str:
        return f"<Organization {self.code}>"
