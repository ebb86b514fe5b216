from unittest.mock import AsyncMock, patch

from fastapi import status

from app.core.config import settings
from app.crud import crud_contributor
from tests.utils import make_list_record

API_V1_LISTS = f"{settings.API_V1_STR}/lists"


async def test_create_list_rate_limit(client, mock_auth, db_conn):
    """After 10 creates /min the 11th should hit the SlowAPI limit."""
    db_conn.fetchrow.return_value = make_list_record(10)

    with patch.object(crud_contributor, "seed_contributors", new_callable=AsyncMock):
        for _ in range(10):
            resp = await client.post(API_V1_LISTS, json={"name": "burst"})
            assert resp.status_code == status.HTTP_201_CREATED

        resp = await client.post(API_V1_LISTS, json={"name": "burst"})

    assert resp.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert "rate" in resp.text.lower()
