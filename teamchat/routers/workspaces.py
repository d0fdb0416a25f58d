"""
Workspace management router.
"""

from fastapi import APIRouter

from teamchat.deps import Broadcaster, CurrentUser, DBSession, OptionalUser
from teamchat.schemas import (
    InviteAcceptById,
    InviteCreate,
    UserPublic,
    WorkspaceCreate,
    WorkspaceMemberOut,
    WorkspaceOut,
    workspace_invite_out,
)
from teamchat.services import accounts, invites, memberships

router = APIRouter(prefix="/workspace", tags=["workspaces"])


@router.post("")
async def create_workspace(body: WorkspaceCreate, user: CurrentUser, db: DBSession):
    workspace = await accounts.create_workspace(db, user, body.name)
    return {"success": True, "workspace": WorkspaceOut.model_validate(workspace)}


@router.get("")
async def list_workspaces(user: CurrentUser, db: DBSession):
    """Workspaces the caller owns or belongs to."""
    workspaces = await accounts.list_workspaces(db, user)
    return {"success": True, "workspaces": [WorkspaceOut.model_validate(w) for w in workspaces]}


@router.get("/invites")
async def my_workspace_invites(user: CurrentUser, db: DBSession):
    """Pending workspace invites addressed to the caller."""
    _, workspace_invites = await invites.list_pending_invites_for_user(db, user)
    return {"success": True, "invites": [workspace_invite_out(i) for i in workspace_invites]}


@router.post("/invite/accept")
async def accept_invite(user: CurrentUser, db: DBSession, token: str | None = None):
    invite, workspace = await invites.accept_workspace_invite(db, token, user)
    return {
        "success": True,
        "message": "Invite accepted",
        "workspace": WorkspaceOut.model_validate(workspace),
        "invite": workspace_invite_out(invite),
    }


@router.post("/invite/reject")
async def reject_invite(user: OptionalUser, db: DBSession, token: str | None = None):
    await invites.reject_workspace_invite(db, token, user)
    return {"success": True, "message": "Invite rejected"}


@router.get("/{workspace_id}/members")
async def list_members(workspace_id: int, user: CurrentUser, db: DBSession):
    await memberships.get_workspace(db, workspace_id)
    await memberships.require_workspace_member(db, user, workspace_id)
    members = await memberships.list_workspace_members(db, workspace_id)
    return {
        "success": True,
        "members": [
            WorkspaceMemberOut(
                user=UserPublic.model_validate(member),
                role=membership.role,
                joined_at=membership.created_at,
            )
            for member, membership in members
        ],
    }


@router.get("/{workspace_id}/invites")
async def list_invites(workspace_id: int, user: CurrentUser, db: DBSession):
    """All invites issued for a workspace."""
    workspace_invites = await invites.list_invites_for_target(db, user, workspace_id=workspace_id)
    return {"success": True, "invites": [workspace_invite_out(i) for i in workspace_invites]}


@router.post("/{workspace_id}/invite")
async def create_invite(
    workspace_id: int,
    body: InviteCreate,
    user: CurrentUser,
    db: DBSession,
    broadcaster: Broadcaster,
):
    invite = await invites.create_workspace_invite(db, user, workspace_id, body.email, broadcaster=broadcaster)
    return {"success": True, "message": "Invite sent", "invite": workspace_invite_out(invite)}


@router.patch("/{workspace_id}/invite/accept")
async def accept_invite_by_id(workspace_id: int, body: InviteAcceptById, user: CurrentUser, db: DBSession):
    invite, workspace = await invites.accept_workspace_invite_by_id(db, workspace_id, body.invite_id, user)
    return {
        "success": True,
        "message": "Invite accepted",
        "workspace": WorkspaceOut.model_validate(workspace),
        "invite": workspace_invite_out(invite),
    }
