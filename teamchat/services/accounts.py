"""
Accounts, organizations, workspaces and channels.
"""

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from teamchat.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from teamchat.models.channel import Channel, generate_channel_slug
from teamchat.models.membership import ChannelMembership, ChannelMembershipState, Membership, MembershipRole
from teamchat.models.organization import Organization
from teamchat.models.user import User
from teamchat.models.workspace import Workspace
from teamchat.services import memberships
from teamchat.services.password import hash_password, validate_password, verify_password
from teamchat.settings import settings

logger = logging.getLogger(__name__)

USER_SEARCH_LIMIT = 5


async def register_user(
    db: AsyncSession,
    first_name: str | None,
    last_name: str | None,
    email: str | None,
    password: str | None,
) -> User:
    """Create a user together with their organization."""
    if not first_name or not last_name or not email or not password:
        raise ValidationError("All fields are required")

    email = email.strip().lower()
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError("Valid email is required") from e
    validate_password(password, settings.password_min_length)

    result = await db.execute(select(User.id).where(User.email == email))
    if result.first():
        raise ConflictError("User already exists")

    user = User(
        email=email,
        hashed_password=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        raise ConflictError("User already exists") from e

    db.add(Organization.for_owner(user))
    await db.commit()
    logger.info(f"Registered user {user.id} ({email})")
    return user


async def authenticate(db: AsyncSession, email: str | None, password: str | None) -> User:
    if not email or not password:
        raise ValidationError("Email and password are required")

    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(password, user.hashed_password):
        logger.info(f"Failed login for user {user.id}")
        raise AuthenticationError("Invalid credentials")
    return user


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def find_organization(db: AsyncSession, user: User) -> Organization | None:
    result = await db.execute(
        select(Organization)
        .where(Organization.owner_id == user.id)
        .order_by(Organization.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_organization(db: AsyncSession, user: User) -> Organization:
    organization = await find_organization(db, user)
    if not organization:
        raise NotFoundError("Organization not found")
    return organization


async def search_users(db: AsyncSession, query: str | None) -> list[User]:
    """Case-insensitive match on email or name."""
    if not query or not query.strip():
        return []
    pattern = f"%{query.strip()}%"
    result = await db.execute(
        select(User)
        .where(
            or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
        .order_by(User.id)
        .limit(USER_SEARCH_LIMIT)
    )
    return list(result.scalars().all())


# -------------------------------------------------------------------------
# Workspaces
# -------------------------------------------------------------------------

async def create_workspace(db: AsyncSession, owner: User, name: str | None) -> Workspace:
    """Create a workspace in the owner's organization; the owner joins as ``owner``."""
    if not name or not name.strip():
        raise ValidationError("Workspace name is required")

    organization = await find_organization(db, owner)
    if not organization:
        organization = Organization.for_owner(owner)
        db.add(organization)
        await db.flush()
        logger.info(f"Created missing organization {organization.code} for user {owner.id}")

    workspace = Workspace(name=name.strip(), owner_id=owner.id, organization_id=organization.id)
    db.add(workspace)
    await db.flush()
    await memberships.add_workspace_member(db, owner.id, workspace.id, MembershipRole.OWNER)
    await db.commit()
    logger.info(f"User {owner.id} created workspace {workspace.id}")
    return workspace


async def list_workspaces(db: AsyncSession, user: User) -> list[Workspace]:
    """Workspaces the user owns or belongs to, newest first."""
    member_of = select(Membership.workspace_id).where(Membership.user_id == user.id)
    result = await db.execute(
        select(Workspace)
        .where(or_(Workspace.owner_id == user.id, Workspace.id.in_(member_of)))
        .order_by(Workspace.created_at.desc(), Workspace.id.desc())
    )
    return list(result.scalars().all())


# -------------------------------------------------------------------------
# Channels
# -------------------------------------------------------------------------

async def create_channel(db: AsyncSession, user: User, name: str | None, workspace_id: int | None) -> Channel:
    """Create a channel; the creator becomes its first member."""
    if not name or not name.strip() or not workspace_id:
        raise ValidationError("Channel name and workspaceId are required")

    workspace = await memberships.get_workspace(db, workspace_id)
    await memberships.require_workspace_member(db, user, workspace.id)

    channel = Channel(workspace_id=workspace.id, name=name.strip(), slug=generate_channel_slug(name))
    db.add(channel)
    await db.flush()
    await memberships.add_channel_member(db, user.id, channel.id)
    await db.commit()
    logger.info(f"User {user.id} created channel {channel.id} in workspace {workspace.id}")
    return channel


async def list_channels(
    db: AsyncSession, user: User, workspace_id: int | None
) -> list[tuple[Channel, ChannelMembershipState]]:
    """Channels of a workspace the user belongs to or is invited to."""
    if not workspace_id:
        raise ValidationError("workspaceId query param is required")

    result = await db.execute(
        select(Channel, ChannelMembership.state)
        .join(ChannelMembership, ChannelMembership.channel_id == Channel.id)
        .where(
            Channel.workspace_id == workspace_id,
            ChannelMembership.user_id == user.id,
        )
        .order_by(Channel.created_at, Channel.id)
    )
    return [(channel, ChannelMembershipState(state)) for channel, state in result.all()]
