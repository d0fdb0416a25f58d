"""
Organization and user directory endpoints.
"""

from fastapi import APIRouter

from teamchat.deps import CurrentUser, DBSession
from teamchat.schemas import OrganizationOut, UserPublic
from teamchat.services import accounts

router = APIRouter(tags=["organizations"])


@router.get("/organization")
async def get_organization(user: CurrentUser, db: DBSession):
    """The caller's own organization."""
    organization = await accounts.get_organization(db, user)
    return {"success": True, "organization": OrganizationOut.model_validate(organization)}


@router.get("/users/search")
async def search_users(user: CurrentUser, db: DBSession, q: str | None = None):
    users = await accounts.search_users(db, q)
    return {"success": True, "users": [UserPublic.model_validate(u) for u in users]}
