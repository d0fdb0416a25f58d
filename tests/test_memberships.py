"""Tests for the membership store."""

import pytest
from sqlalchemy.exc import InvalidRequestError

from teamchat.errors import NotFoundError, PermissionDeniedError
from teamchat.models.channel import Channel
from teamchat.models.membership import MembershipRole
from teamchat.models.workspace import Workspace
from teamchat.services import accounts, memberships


@pytest.fixture
async def acme(db, alice, bob):
    workspace = await accounts.create_workspace(db, alice, "Acme")
    channel = await accounts.create_channel(db, alice, "general", workspace.id)
    return workspace, channel


async def test_add_workspace_member_is_idempotent(db, acme, bob):
    workspace, _ = acme
    assert not await memberships.is_workspace_member(db, bob.id, workspace.id)

    first = await memberships.add_workspace_member(db, bob.id, workspace.id, MembershipRole.GUEST)
    second = await memberships.add_workspace_member(db, bob.id, workspace.id, MembershipRole.MEMBER)
    await db.commit()

    assert first.id == second.id
    assert second.role == MembershipRole.GUEST
    assert await memberships.is_workspace_member(db, bob.id, workspace.id)
    assert len(await memberships.list_workspace_members(db, workspace.id)) == 2


async def test_add_channel_member_promotes_pending(db, acme, bob):
    _, channel = acme
    placeholder = await memberships.add_pending_channel_member(db, bob.id, channel.id)
    assert placeholder.is_pending
    assert not await memberships.is_channel_member(db, bob.id, channel.id)

    membership = await memberships.add_channel_member(db, bob.id, channel.id)
    again = await memberships.add_channel_member(db, bob.id, channel.id)
    await db.commit()

    assert membership.id == placeholder.id == again.id
    assert await memberships.is_channel_member(db, bob.id, channel.id)


async def test_remove_pending_leaves_full_members_alone(db, acme, alice):
    _, channel = acme
    await memberships.remove_pending_channel_member(db, alice.id, channel.id)
    assert await memberships.is_channel_member(db, alice.id, channel.id)


async def test_members_listed_in_join_order(db, acme, alice, bob, carol):
    workspace, channel = acme
    await memberships.add_workspace_member(db, carol.id, workspace.id)
    await memberships.add_workspace_member(db, bob.id, workspace.id)
    await memberships.add_channel_member(db, bob.id, channel.id)
    await db.commit()

    members = await memberships.list_workspace_members(db, workspace.id)
    assert [(user.email, m.role) for user, m in members] == [
        ("alice@example.com", "owner"),
        ("carol@example.com", "member"),
        ("bob@example.com", "member"),
    ]
    channel_members = await memberships.list_channel_members(db, channel.id)
    assert [user.id for user, _ in channel_members] == [alice.id, bob.id]


async def test_require_helpers(db, acme, bob):
    workspace, channel = acme
    with pytest.raises(PermissionDeniedError):
        await memberships.require_workspace_member(db, bob, workspace.id)
    with pytest.raises(PermissionDeniedError):
        await memberships.require_channel_member(db, bob, channel.id)
    with pytest.raises(NotFoundError):
        await memberships.get_channel(db, 424242)


async def test_unloaded_collections_raise_instead_of_querying(session_maker, acme):
    workspace, channel = acme
    async with session_maker() as session:
        loaded_channel = await session.get(Channel, channel.id)
        loaded_workspace = await session.get(Workspace, workspace.id)
        with pytest.raises(InvalidRequestError):
            loaded_channel.memberships
        with pytest.raises(InvalidRequestError):
            loaded_workspace.channels
