"""Tests for workspaces, workspace members and workspace invites."""

from sqlalchemy import select

from teamchat.models.invite import InviteStatus, WorkspaceInvite
from teamchat.models.membership import Membership, MembershipRole
from teamchat.services.broadcaster import INVITE_SENT, WORKSPACE_INVITE


async def _membership(session_maker, user_id: int, workspace_id: int) -> Membership | None:
    async with session_maker() as session:
        result = await session.execute(
            select(Membership).where(Membership.user_id == user_id, Membership.workspace_id == workspace_id)
        )
        return result.scalar_one_or_none()


async def test_create_workspace_makes_owner_membership(make_client, session_maker, alice):
    client = make_client(alice)
    response = await client.post("/workspace", json={"name": "  Acme  "})
    assert response.status_code == 200
    workspace = response.json()["workspace"]
    assert workspace["name"] == "Acme"
    assert workspace["ownerId"] == alice.id
    assert workspace["color"].startswith("hsl(")
    assert workspace["organizationId"] is not None

    membership = await _membership(session_maker, alice.id, workspace["id"])
    assert membership.role == MembershipRole.OWNER


async def test_create_workspace_requires_name(make_client, alice):
    client = make_client(alice)
    response = await client.post("/workspace", json={"name": "   "})
    assert response.status_code == 400
    assert response.json()["error"] == "Workspace name is required"


async def test_list_workspaces_newest_first(make_client, alice, bob):
    client = make_client(alice)
    await client.post("/workspace", json={"name": "First"})
    await client.post("/workspace", json={"name": "Second"})
    await make_client(bob).post("/workspace", json={"name": "Bob's"})

    response = await client.get("/workspace")
    assert response.status_code == 200
    assert [w["name"] for w in response.json()["workspaces"]] == ["Second", "First"]


async def test_list_workspaces_requires_auth(client):
    response = await client.get("/workspace")
    assert response.status_code == 401


async def test_workspace_invite_accept_by_token(make_client, session_maker, recorder, alice, bob, workspace_with_channel):
    workspace_id, _ = workspace_with_channel
    response = await make_client(alice).post(f"/workspace/{workspace_id}/invite", json={"email": "Bob@Example.com"})
    assert response.status_code == 200
    invite = response.json()["invite"]
    assert invite["email"] == "bob@example.com"
    assert invite["status"] == "pending"
    assert invite["workspaceName"] == "Acme"

    [(topic, payload)] = recorder.events(WORKSPACE_INVITE)
    assert topic == f"private-user-{bob.id}"
    assert payload["workspaceId"] == workspace_id
    assert payload["inviter"]["firstName"] == "Alice"
    [(topic, _)] = recorder.events(INVITE_SENT)
    assert topic == f"private-user-{alice.id}"

    bob_client = make_client(bob)
    pending = await bob_client.get("/workspace/invites")
    assert [i["id"] for i in pending.json()["invites"]] == [invite["id"]]

    response = await bob_client.post("/workspace/invite/accept", params={"token": invite["token"]})
    assert response.status_code == 200
    assert response.json()["workspace"]["id"] == workspace_id

    membership = await _membership(session_maker, bob.id, workspace_id)
    assert membership.role == MembershipRole.MEMBER

    workspaces = await bob_client.get("/workspace")
    assert [w["id"] for w in workspaces.json()["workspaces"]] == [workspace_id]

    pending = await bob_client.get("/workspace/invites")
    assert pending.json()["invites"] == []


async def test_workspace_invite_accept_by_id(make_client, session_maker, alice, bob, carol, workspace_with_channel):
    workspace_id, _ = workspace_with_channel
    response = await make_client(alice).post(f"/workspace/{workspace_id}/invite", json={"email": "bob@example.com"})
    invite_id = response.json()["invite"]["id"]

    response = await make_client(carol).patch(f"/workspace/{workspace_id}/invite/accept", json={"inviteId": invite_id})
    assert response.status_code == 403
    assert response.json()["error"] == "Invite not meant for this user"

    response = await make_client(bob).patch(f"/workspace/{workspace_id + 1}/invite/accept", json={"inviteId": invite_id})
    assert response.status_code == 400
    assert response.json()["error"] == "Invite does not belong to this workspace"

    response = await make_client(bob).patch(f"/workspace/{workspace_id}/invite/accept", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Invite ID is required"

    response = await make_client(bob).patch(f"/workspace/{workspace_id}/invite/accept", json={"inviteId": invite_id})
    assert response.status_code == 200
    assert await _membership(session_maker, bob.id, workspace_id) is not None

    response = await make_client(bob).patch(f"/workspace/{workspace_id}/invite/accept", json={"inviteId": invite_id})
    assert response.status_code == 400
    assert response.json()["error"] == "Invite already processed"


async def test_workspace_invite_validation(make_client, alice, bob, carol, workspace_with_channel):
    workspace_id, _ = workspace_with_channel
    client = make_client(alice)

    response = await client.post(f"/workspace/{workspace_id}/invite", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "Email is required"

    response = await client.post(f"/workspace/{workspace_id}/invite", json={"email": "not-an-email"})
    assert response.status_code == 400
    assert response.json()["error"] == "Valid invitee email is required"

    response = await client.post(f"/workspace/{workspace_id}/invite", json={"email": "ghost@example.com"})
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"

    response = await client.post(f"/workspace/{workspace_id}/invite", json={"email": "alice@example.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "User is already a member of this workspace"

    response = await client.post("/workspace/999999/invite", json={"email": "bob@example.com"})
    assert response.status_code == 404

    response = await make_client(carol).post(f"/workspace/{workspace_id}/invite", json={"email": "bob@example.com"})
    assert response.status_code == 403


async def test_workspace_invite_reject(make_client, session_maker, alice, bob, carol, workspace_with_channel):
    workspace_id, _ = workspace_with_channel
    response = await make_client(alice).post(f"/workspace/{workspace_id}/invite", json={"email": "bob@example.com"})
    token = response.json()["invite"]["token"]

    response = await make_client(carol).post("/workspace/invite/reject", params={"token": token})
    assert response.status_code == 403

    # Rejecting from the email link works without a session
    response = await make_client().post("/workspace/invite/reject", params={"token": token})
    assert response.status_code == 200

    async with session_maker() as session:
        invite = (await session.execute(select(WorkspaceInvite))).scalar_one()
    assert invite.status == InviteStatus.REJECTED
    assert invite.responded_at is not None

    response = await make_client(bob).post("/workspace/invite/accept", params={"token": token})
    assert response.status_code == 400
    assert response.json()["error"] == "Invite already processed"
    assert await _membership(session_maker, bob.id, workspace_id) is None

    response = await make_client().post("/workspace/invite/reject", params={"token": token})
    assert response.status_code == 400
    assert response.json()["error"] == "Invite already processed"


async def test_invalid_invite_token(make_client, bob):
    response = await make_client(bob).post("/workspace/invite/accept", params={"token": "garbage"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid or expired invite token"

    response = await make_client(bob).post("/workspace/invite/accept")
    assert response.status_code == 400
    assert response.json()["error"] == "Missing invite token"


async def test_workspace_members_and_invites_lists(make_client, alice, bob, carol, workspace_with_channel):
    workspace_id, _ = workspace_with_channel
    alice_client = make_client(alice)
    response = await alice_client.post(f"/workspace/{workspace_id}/invite", json={"email": "bob@example.com"})
    token = response.json()["invite"]["token"]
    await make_client(bob).post("/workspace/invite/accept", params={"token": token})
    await alice_client.post(f"/workspace/{workspace_id}/invite", json={"email": "carol@example.com"})

    response = await alice_client.get(f"/workspace/{workspace_id}/members")
    assert response.status_code == 200
    members = response.json()["members"]
    assert [(m["user"]["email"], m["role"]) for m in members] == [
        ("alice@example.com", "owner"),
        ("bob@example.com", "member"),
    ]

    response = await alice_client.get(f"/workspace/{workspace_id}/invites")
    assert [(i["email"], i["status"]) for i in response.json()["invites"]] == [
        ("carol@example.com", "pending"),
        ("bob@example.com", "accepted"),
    ]

    response = await make_client(carol).get(f"/workspace/{workspace_id}/members")
    assert response.status_code == 403
    response = await make_client(carol).get(f"/workspace/{workspace_id}/invites")
    assert response.status_code == 403
