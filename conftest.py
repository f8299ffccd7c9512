"""
conftest.py  – Test fixtures for the journey collaboration backend.

Key points
----------
* The environment is forced to `test` before the app is imported: Firebase and
  the DB pool are skipped and bearer tokens are read as raw Firebase UIDs.
* The CRUD layer is swapped for `tests.fakes.FakeCollaborationStore`, so the
  API, service and client tests need no PostgreSQL.
* tests/crud runs the real SQL through `db_conn`, a connection held in a
  transaction that is rolled back after each test.
* httpx.AsyncClient over ASGITransport with a dependency override for `get_db`.
* pytest-asyncio runs in auto mode (see pyproject.toml).
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_PORT", "5432")
os.environ.setdefault("DB_USER", "journeys")
os.environ.setdefault("DB_PASSWORD", "journeys")
os.environ.setdefault("DB_NAME", "journeys_test")

import asyncio
from typing import Any, Dict

import asyncpg
import pytest
import pytest_asyncio
import sentry_sdk
from httpx import ASGITransport, AsyncClient

from main import app as fastapi_app
from app.api import deps
from app.schemas.collaboration import CollaboratorStatus
from app.schemas.journey import JourneyCreate
from tests.fakes import FakeCollaborationStore


# --------------------------------------------------------------------------
# In-memory CRUD layer
# --------------------------------------------------------------------------
@pytest.fixture
def store(monkeypatch) -> FakeCollaborationStore:
    return FakeCollaborationStore().install(monkeypatch)


# --------------------------------------------------------------------------
# httpx.AsyncClient with dependency override for `get_db`
# --------------------------------------------------------------------------
@pytest_asyncio.fixture(scope="function")
async def client(store):
    async def override_get_db():
        # The fake CRUD functions ignore the connection
        yield None

    fastapi_app.dependency_overrides[deps.get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=fastapi_app),
                           base_url="http://testserver") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def asgi_transport(client) -> ASGITransport:
    """Transport for app.client code; shares the `client` fixture's overrides."""
    return ASGITransport(app=fastapi_app)


# --------------------------------------------------------------------------
# Real PostgreSQL for the CRUD tests (skipped when no migrated DB is reachable)
# --------------------------------------------------------------------------
@pytest_asyncio.fixture()
async def db_pool():
    from app.core.config import settings

    # Prefer TEST_DATABASE_URL, else assemble from the DB_* settings
    dsn = os.environ.get("TEST_DATABASE_URL") or settings.DATABASE_URL
    try:
        pool = await asyncpg.create_pool(dsn=dsn, min_size=1, max_size=2, timeout=5)
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as exc:
        pytest.skip(f"PostgreSQL not available: {exc}")
    try:
        if await pool.fetchval("SELECT to_regclass('journey_collaborators')") is None:
            pytest.skip("Database is not migrated (run `alembic upgrade head`)")
        yield pool
    finally:
        await pool.close()


# --------------------------------------------------------------------------
# Function-scoped DB connection wrapped in a rollback-only transaction
# --------------------------------------------------------------------------
@pytest_asyncio.fixture()
async def db_conn(db_pool):
    async with db_pool.acquire() as conn:
        tx = conn.transaction()
        await tx.start()
        try:
            yield conn
        finally:
            await tx.rollback()


# --------------------------------------------------------------------------
# Helper fixtures for common test data
# --------------------------------------------------------------------------
@pytest.fixture
def owner(store) -> Dict[str, Any]:
    return store.add_user("olivia")


@pytest.fixture
def contributor(store) -> Dict[str, Any]:
    return store.add_user("bob")


@pytest.fixture
def alice(store) -> Dict[str, Any]:
    return store.add_user("alice")


@pytest.fixture
def outsider(store) -> Dict[str, Any]:
    return store.add_user("mallory")


@pytest_asyncio.fixture
async def journey(store, owner) -> Dict[str, Any]:
    return await store.create_journey(None, JourneyCreate(title="Lisbon Long Weekend"), owner["id"])


@pytest_asyncio.fixture
async def shared_journey(store, journey, owner, contributor) -> Dict[str, Any]:
    """`journey` with `contributor` already accepted."""
    invitation = await store.create_invitation(
        None,
        journey_id=journey["id"],
        invitee_email=contributor["email"],
        invitee_user_id=contributor["id"],
        invited_by=owner["id"],
    )
    await store.set_invitation_response(
        None, invitation["id"], status=CollaboratorStatus.ACCEPTED, user_id=contributor["id"],
    )
    return journey


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """
    Ensure SlowAPI's in-memory storage is empty for every test.
    """
    limiter = getattr(fastapi_app.state, "limiter", None)
    if limiter:
        limiter.reset()      # ---- pre-test wipe
    yield
    if limiter:
        limiter.reset()      # ---- post-test wipe


# ---------- helper: build an Authorization header for a given user ----------
@pytest.fixture
def make_auth_header():
    """
    Tests call:  headers = make_auth_header(test_user)
    """
    def _make(user: Dict[str, Any], token_type: str = "Bearer") -> Dict[str, str]:
        return {"Authorization": f"{token_type} {user['firebase_uid']}"}

    return _make


@pytest.fixture(scope="session", autouse=True)
def _close_sentry():
    """
    Flush the event queue and disable the client after the test
    session ends, if a client was initialised.
    """
    yield
    sentry_sdk.flush()
    client = sentry_sdk.get_client()
    if client is not None:
        client.close(timeout=2.0)
