# tests/api/test_pool_pressure.py
import asyncio
from unittest.mock import patch

import pytest
from fastapi import status
from httpx import AsyncClient

from app.api import deps
from app.core.config import settings
from app.crud import crud_contributor
from app.db.base import borrow_connection
from main import app as fastapi_app
from tests.utils import make_list_record, make_relationship_record

API_V1_LISTS = f"{settings.API_V1_STR}/lists"


class BoundedPool:
    """Pool with a fixed number of slots; `acquire` waits like asyncpg's does."""

    def __init__(self, size: int, conn):
        self._slots = asyncio.Semaphore(size)
        self._conn = conn
        self.in_use = 0

    async def acquire(self, timeout=None):
        await asyncio.wait_for(self._slots.acquire(), timeout)
        self.in_use += 1
        return self._conn

    async def release(self, conn):
        self.in_use -= 1
        self._slots.release()


@pytest.fixture()
def small_pool(client, db_conn):
    """Route every connection of the app through a two-slot pool."""
    pool = BoundedPool(2, db_conn)

    async def override_get_db():
        async with borrow_connection(pool) as conn:
            yield conn

    async def override_get_db_pool():
        return pool

    fastapi_app.dependency_overrides[deps.get_db] = override_get_db
    fastapi_app.dependency_overrides[deps.get_db_pool] = override_get_db_pool
    return pool


async def _slow_add(conn, list_id, contributor_id):
    await asyncio.sleep(0.01)
    return make_relationship_record(100 + contributor_id, list_id, contributor_id)


async def test_concurrent_bulk_adds_do_not_starve_the_pool(client: AsyncClient, mock_auth, db_conn, small_pool):
    db_conn.fetchrow.return_value = make_list_record(10)

    with patch.object(crud_contributor, "add_contributor", side_effect=_slow_add):
        responses = await asyncio.wait_for(
            asyncio.gather(
                client.post(f"{API_V1_LISTS}/10/contributors", json={"contributors": [2, 3]}),
                client.post(f"{API_V1_LISTS}/10/contributors", json={"contributors": [4, 5]}),
            ),
            timeout=5,
        )

    assert [r.status_code for r in responses] == [status.HTTP_201_CREATED] * 2
    assert small_pool.in_use == 0


async def test_concurrent_creates_with_seeding_do_not_starve_the_pool(
    client: AsyncClient, mock_auth, db_conn, small_pool
):
    db_conn.fetchrow.return_value = make_list_record(10)

    with patch.object(crud_contributor, "add_contributor", side_effect=_slow_add) as add:
        responses = await asyncio.wait_for(
            asyncio.gather(
                client.post(API_V1_LISTS, json={"name": "a", "contributors": [2, 3]}),
                client.post(API_V1_LISTS, json={"name": "b", "contributors": [4, 5]}),
            ),
            timeout=5,
        )

    assert [r.status_code for r in responses] == [status.HTTP_201_CREATED] * 2
    assert add.await_count == 4
    assert small_pool.in_use == 0


async def test_exhausted_pool_answers_503(client: AsyncClient, mock_auth, db_conn, small_pool, monkeypatch):
    monkeypatch.setattr(settings, "DB_ACQUIRE_TIMEOUT", 0.05)
    # Something else holds every connection
    await small_pool.acquire()
    await small_pool.acquire()

    with patch.object(crud_contributor, "add_contributors") as add_many:
        response = await client.post(f"{API_V1_LISTS}/10/contributors", json={"contributors": [2]})

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert "busy" in response.json()["detail"]
    add_many.assert_not_called()
