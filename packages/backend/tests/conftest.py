"""Test fixtures — a fresh SQLite database and app per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own file-backed SQLite database (aiosqlite) with
   the schema created from the models. A file rather than :memory: so
   every connection has its own transaction, like Postgres.
2. The app is built with create_app(settings, gate), where the gate's
   store factory returns that test store — no env vars involved.
3. Requests go through httpx's ASGITransport, so the whole middleware
   stack (CORS → request id → security headers → route guard) runs.

Fakes for call counting live in fakes.py.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fakes import TEST_APP_URL, make_settings
from todogate.db.engine import build_engine
from todogate.db.models import Base
from todogate.db.store import SqlStore
from todogate.gate import DependencyGate, default_verifier_factory
from todogate.main import create_app


def client_for(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url=TEST_APP_URL)


@pytest.fixture()
def settings():
    return make_settings()


@pytest_asyncio.fixture()
async def store(tmp_path):
    """SqlStore over a fresh SQLite file with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'todogate.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    sql_store = SqlStore(engine)
    try:
        yield sql_store
    finally:
        await engine.dispose()


@pytest.fixture()
def gate(settings, store):
    """Real gate: the test store plus the real credential verifier."""
    return DependencyGate(
        settings,
        store_factory=lambda _settings: store,
        verifier_factory=default_verifier_factory,
    )


@pytest.fixture()
def app(settings, gate):
    return create_app(settings=settings, gate=gate)


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client against the full app (real guard, real sessions)."""
    async with client_for(app) as ac:
        yield ac


@pytest.fixture()
def sign_in(client):
    """Factory: register + sign in a user, return bearer headers for them.

    Learn: The sign-in response also sets a session cookie on the client's
    jar. We clear it so each request authenticates only through the
    headers we pass — otherwise the last user signed in would silently
    become the caller for every later request.
    """
    counter = {"n": 0}

    async def _sign_in(name: str = "user", password: str = "password_123") -> dict[str, str]:
        counter["n"] += 1
        email = f"{name}-{counter['n']}@example.com"
        r = await client.post(
            "/api/auth/sign-up/email",
            json={"email": email, "name": name, "password": password},
        )
        assert r.status_code == 201, r.text
        r = await client.post(
            "/api/auth/sign-in/email",
            json={"email": email, "password": password},
        )
        assert r.status_code == 200, r.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {r.json()['data']['token']}"}

    return _sign_in


@pytest.fixture()
def todo_body():
    return {
        "text": "Write report",
        "description": "Quarterly numbers",
        "status": "pending",
        "startDate": "2024-03-01",
        "startTime": "09:00",
        "endDate": "2024-03-01",
        "endTime": "10:00",
    }
