"""
conftest.py  – test fixtures for the User Lists API.

Key points
----------
* The environment is forced to `test` *before* anything from `app` is
  imported, so settings skip caching, Firebase/DB startup is skipped and the
  bare-UID bearer token is accepted.
* No real database: `get_db` yields an `AsyncMock`-backed connection and
  `get_db_pool` returns a pool whose `acquire()` hands out that same
  connection. Tests script the connection (`fetchrow`, `fetchval`, `fetch`,
  `execute`) or patch the CRUD layer.
* httpx.AsyncClient over ASGITransport with dependency overrides.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_PORT", "5432")
os.environ.setdefault("DB_USER", "lists")
os.environ.setdefault("DB_PASSWORD", "lists")
os.environ.setdefault("DB_NAME", "lists_test")

from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
import sentry_sdk
from httpx import ASGITransport, AsyncClient

from main import app as fastapi_app
from app.api import deps

OWNER_ID = 1
OTHER_USER_ID = 2


# --------------------------------------------------------------------------
# Fake asyncpg connection / pool
# --------------------------------------------------------------------------
@pytest.fixture()
def db_conn() -> MagicMock:
    """A stand-in for `asyncpg.Connection`; `async with conn.transaction()` works."""
    conn = MagicMock(name="asyncpg.Connection")
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="DELETE 0")
    conn.transaction.return_value.__aexit__.return_value = False
    return conn


@pytest.fixture()
def db_pool(db_conn: MagicMock) -> MagicMock:
    """A stand-in for `asyncpg.Pool` whose `acquire()` hands out `db_conn`."""
    pool = MagicMock(name="asyncpg.Pool")
    pool.acquire = AsyncMock(return_value=db_conn)
    pool.release = AsyncMock()
    return pool


# --------------------------------------------------------------------------
# httpx.AsyncClient with dependency overrides for the DB
# --------------------------------------------------------------------------
@pytest_asyncio.fixture()
async def client(db_conn, db_pool):
    async def override_get_db():
        yield db_conn

    async def override_get_db_pool():
        return db_pool

    fastapi_app.dependency_overrides[deps.get_db] = override_get_db
    fastapi_app.dependency_overrides[deps.get_db_pool] = override_get_db_pool

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://testserver") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


# --------------------------------------------------------------------------
# Auth-mocking helpers
# --------------------------------------------------------------------------
@pytest.fixture()
def auth_as() -> Callable[[int], None]:
    """
    Tests call:  auth_as(OTHER_USER_ID)
    to make every following request come from that user.
    """
    def _auth_as(user_id: int) -> None:
        async def override() -> int:
            return user_id

        fastapi_app.dependency_overrides[deps.get_current_user_id] = override

    yield _auth_as
    fastapi_app.dependency_overrides.pop(deps.get_current_user_id, None)


@pytest.fixture()
def mock_auth(auth_as):
    """Authenticate as the list owner."""
    auth_as(OWNER_ID)
    yield OWNER_ID


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """SlowAPI keeps counters in memory; start every test from zero."""
    limiter = getattr(fastapi_app.state, "limiter", None)
    if limiter:
        limiter.reset()
    yield
    if limiter:
        limiter.reset()


@pytest.fixture(scope="session", autouse=True)
def _close_sentry():
    """Flush and close the Sentry client if one was initialised."""
    yield
    sentry_sdk.flush()
    client = sentry_sdk.get_client()
    if client is not None and client.is_active():
        client.close(timeout=2.0)
