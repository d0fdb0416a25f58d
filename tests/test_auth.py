"""Tests for registration, login and the session cookie gate."""

from sqlalchemy import select

from teamchat.models.organization import Organization
from teamchat.models.user import User
from teamchat.settings import settings


async def test_register_creates_user_and_organization(client, session_maker):
    response = await client.post(
        "/auth/register",
        json={"firstName": "Dana", "lastName": "Diaz", "email": "Dana@Example.com", "password": "password123"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "dana@example.com"
    assert body["user"]["firstName"] == "Dana"

    async with session_maker() as session:
        user = (await session.execute(select(User).where(User.email == "dana@example.com"))).scalar_one()
        org = (await session.execute(select(Organization).where(Organization.owner_id == user.id))).scalar_one()
    assert org.code.startswith("org_dana_")
    assert len(org.code) == len("org_dana_") + 6
    assert org.name == "Dana's Organization"


async def test_register_requires_all_fields(client):
    response = await client.post("/auth/register", json={"firstName": "Dana", "email": "d@example.com"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "All fields are required"}


async def test_register_rejects_duplicate_email(client, alice):
    response = await client.post(
        "/auth/register",
        json={"firstName": "Al", "lastName": "Ice", "email": "ALICE@example.com", "password": "password123"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "User already exists"


async def test_register_rejects_short_password(client):
    response = await client.post(
        "/auth/register",
        json={"firstName": "Dana", "lastName": "Diaz", "email": "dana@example.com", "password": "short"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Password must be at least 8 characters"


async def test_login_sets_session_cookie(client, make_client, alice):
    response = await client.post("/auth/login", json={"email": "alice@example.com", "password": "password123"})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == alice.id
    assert "token" in response.cookies

    set_cookie = response.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=strict" in set_cookie
    assert f"max-age={settings.session_max_age_seconds}" in set_cookie

    fresh = make_client()
    me = await fresh.get("/auth/me", headers={"Cookie": f"token={response.cookies['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "alice@example.com"


async def test_login_failures(client, alice):
    response = await client.post("/auth/login", json={"email": "alice@example.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "Email and password are required"

    response = await client.post("/auth/login", json={"email": "nobody@example.com", "password": "password123"})
    assert response.status_code == 404
    assert response.json()["error"] == "User not found"

    response = await client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


async def test_me_without_cookie_is_unauthorized(client):
    response = await client.get("/auth/me")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized"}


async def test_me_with_garbage_token(make_client):
    client = make_client()
    response = await client.get("/auth/me", headers={"Cookie": "token=not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired token"


async def test_missing_secret_is_a_server_misconfiguration(make_client, alice, monkeypatch):
    client = make_client(alice)
    monkeypatch.setattr(settings, "jwt_secret", None)
    response = await client.get("/auth/me")
    assert response.status_code == 500
    assert response.json()["error"] == "Server misconfiguration"


async def test_logout_clears_cookie(client):
    response = await client.post("/auth/logout")
    assert response.status_code == 200
    assert 'token=""' in response.headers["set-cookie"] or "token=;" in response.headers["set-cookie"]


async def test_organization_and_user_search(make_client, alice, bob, carol):
    client = make_client(alice)

    response = await client.get("/organization")
    assert response.status_code == 200
    assert response.json()["organization"]["name"] == "Alice's Organization"

    response = await client.get("/users/search", params={"q": "BR"})
    assert [u["email"] for u in response.json()["users"]] == ["bob@example.com"]

    response = await client.get("/users/search", params={"q": "example.com"})
    assert len(response.json()["users"]) == 3

    response = await client.get("/users/search", params={"q": "  "})
    assert response.json()["users"] == []


async def test_request_id_header_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc-123"
