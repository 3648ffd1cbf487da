"""Credential subsystem tests.

Learn: Tests cover:
1. Sign-up + duplicate prevention
2. Sign-in → token in the body and an HttpOnly cookie
3. get-session with bearer, cookie, or nothing
4. Sign-out revokes the server-side session row
5. Forged and expired tokens never resolve
6. Missing auth config → 503 on /auth, public routes unaffected
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import update

from conftest import client_for
from fakes import TEST_SECRET, make_settings
from todogate.db.models import Session
from todogate.gate import DependencyGate
from todogate.main import create_app


def _email() -> str:
    return f"user-{uuid.uuid4().hex[:8]}@example.com"


async def _register(client, email: str, password: str = "password_123"):
    return await client.post(
        "/api/auth/sign-up/email",
        json={"email": email, "name": "Test User", "password": password},
    )


# ═══════════════════════════════════════════════════════════
# Sign-up
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sign_up(client):
    email = _email()
    r = await _register(client, email)
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    user = body["data"]
    assert user["email"] == email
    assert user["name"] == "Test User"
    assert user["role"] == "user"
    assert "id" in user
    assert "createdAt" in user
    assert "passwordHash" not in user


@pytest.mark.asyncio
async def test_sign_up_duplicate_email(client):
    """Same email twice → 409, whatever the case."""
    email = _email()
    assert (await _register(client, email)).status_code == 201

    r = await _register(client, email.upper())
    assert r.status_code == 409
    assert r.json() == {"success": False, "message": "Email already registered"}


@pytest.mark.asyncio
async def test_sign_up_short_password(client):
    r = await _register(client, _email(), password="short")
    assert r.status_code == 400
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_sign_up_bad_email(client):
    r = await _register(client, "not-an-email")
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Sign-in
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_sign_in_returns_token_and_cookie(client, settings):
    email = _email()
    await _register(client, email)

    r = await client.post(
        "/api/auth/sign-in/email", json={"email": email, "password": "password_123"}
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["token"]
    assert data["user"]["email"] == email

    set_cookie = r.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.session_cookie_name}=")
    assert "httponly" in set_cookie.lower()
    assert "samesite=lax" in set_cookie.lower()
    assert "secure" not in set_cookie.lower()  # plain http base URL


@pytest.mark.asyncio
async def test_sign_in_wrong_password(client):
    email = _email()
    await _register(client, email)
    r = await client.post(
        "/api/auth/sign-in/email", json={"email": email, "password": "wrong_password"}
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_sign_in_unknown_email_looks_like_wrong_password(client):
    r = await client.post(
        "/api/auth/sign-in/email", json={"email": _email(), "password": "password_123"}
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"


# ═══════════════════════════════════════════════════════════
# Sessions
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_session_with_bearer(client, sign_in):
    headers = await sign_in("alice")
    r = await client.get("/api/auth/get-session", headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["name"] == "alice"
    assert body["session"]["userId"] == body["user"]["id"]
    assert "expiresAt" in body["session"]


@pytest.mark.asyncio
async def test_get_session_without_credentials_is_null(client):
    r = await client.get("/api/auth/get-session")
    assert r.status_code == 200
    assert r.json() is None


@pytest.mark.asyncio
async def test_cookie_authenticates_protected_routes(client):
    """The cookie set by sign-in is enough on its own."""
    email = _email()
    await _register(client, email)
    await client.post(
        "/api/auth/sign-in/email", json={"email": email, "password": "password_123"}
    )

    r = await client.get("/api/todos")
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_sign_out_revokes_session(client, sign_in):
    headers = await sign_in("alice")
    assert (await client.get("/api/todos", headers=headers)).status_code == 200

    r = await client.post("/api/auth/sign-out", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Signed out"}

    # Same token, row gone
    assert (await client.get("/api/todos", headers=headers)).status_code == 401
    assert (await client.get("/api/auth/get-session", headers=headers)).json() is None


@pytest.mark.asyncio
async def test_sign_out_only_revokes_that_session(client, sign_in):
    alice = await sign_in("alice")
    bob = await sign_in("bob")
    await client.post("/api/auth/sign-out", headers=alice)
    assert (await client.get("/api/todos", headers=bob)).status_code == 200


@pytest.mark.asyncio
async def test_forged_token_is_rejected(client, sign_in):
    headers = await sign_in("alice")
    real = headers["Authorization"].removeprefix("Bearer ")
    claims = jwt.decode(real, options={"verify_signature": False})

    forged = jwt.encode(claims, "not-the-secret-" + TEST_SECRET, algorithm="HS256")
    r = await client.get("/api/todos", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_token_for_unknown_session_is_rejected(client, sign_in):
    """Correctly signed, but the sid names no row."""
    headers = await sign_in("alice")
    claims = jwt.decode(
        headers["Authorization"].removeprefix("Bearer "),
        options={"verify_signature": False},
    )
    claims["sid"] = str(uuid.uuid4())
    token = jwt.encode(claims, TEST_SECRET, algorithm="HS256")
    r = await client.get("/api/todos", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_expired_session_row_is_rejected(client, sign_in, store):
    headers = await sign_in("alice")
    async with store.sessions.begin() as db:
        await db.execute(
            update(Session).values(
                expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)
            )
        )
    r = await client.get("/api/todos", headers=headers)
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Auth not configured
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_missing_secret_makes_auth_unavailable(store):
    settings = make_settings(auth_secret=None)
    gate = DependencyGate(settings, store_factory=lambda _settings: store)
    app = create_app(settings=settings, gate=gate)

    async with client_for(app) as ac:
        r = await ac.post(
            "/api/auth/sign-in/email", json={"email": _email(), "password": "password_123"}
        )
        assert r.status_code == 503
        assert r.json()["message"] == "Auth not available"

        r = await ac.get("/api/todos")
        assert r.status_code == 503

        r = await ac.get("/api/health")
        assert r.status_code == 200
