"""
Authentication router: register, login, logout and current user.
"""

from fastapi import APIRouter, Response

from teamchat.deps import CurrentUser, DBSession
from teamchat.schemas import LoginRequest, RegisterRequest, UserPublic
from teamchat.services import accounts
from teamchat.services.tokens import create_session_token
from teamchat.settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])


def set_session_cookie(response: Response, session_token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="strict",
        max_age=settings.session_max_age_seconds,
        path="/",
    )


@router.post("/register")
async def register(body: RegisterRequest, db: DBSession):
    """Create an account and its organization."""
    user = await accounts.register_user(
        db,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
    )
    return {
        "success": True,
        "message": "Account created successfully",
        "user": UserPublic.model_validate(user),
    }


@router.post("/login")
async def login(body: LoginRequest, response: Response, db: DBSession):
    """Verify credentials and set the session cookie."""
    user = await accounts.authenticate(db, body.email, body.password)
    set_session_cookie(response, create_session_token(user))
    return {
        "success": True,
        "message": "Login successful",
        "user": UserPublic.model_validate(user),
    }


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(key=settings.session_cookie_name, path="/")
    return {"success": True, "message": "Logged out"}


@router.get("/me")
async def me(user: CurrentUser):
    return {"success": True, "user": UserPublic.model_validate(user)}
