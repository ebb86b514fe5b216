# tests/auth/test_permission_edges.py
import pytest
from fastapi import status
from httpx import AsyncClient

from app.core.config import settings
from conftest import OTHER_USER_ID

API = f"{settings.API_V1_STR}/lists"

ALL_ROUTES = [
    ("GET", API, None),
    ("POST", API, {"name": "x"}),
    ("GET", f"{API}/10", None),
    ("PATCH", f"{API}/10", {"name": "x"}),
    ("DELETE", f"{API}/10", None),
    ("GET", f"{API}/contributors", None),
    ("GET", f"{API}/10/contributors", None),
    ("POST", f"{API}/10/contributors", {"contributors": [2]}),
    ("DELETE", f"{API}/10/contributors/5", None),
]

OWNER_ONLY_ROUTES = [
    ("PATCH", f"{API}/10", {"name": "x"}),
    ("DELETE", f"{API}/10", None),
    ("POST", f"{API}/10/contributors", {"contributors": [2]}),
    ("DELETE", f"{API}/10/contributors/5", None),
]


@pytest.mark.parametrize("method,url,body", ALL_ROUTES)
async def test_every_route_requires_authentication(client: AsyncClient, method, url, body):
    response = await client.request(method, url, json=body)
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.parametrize("method,url,body", OWNER_ONLY_ROUTES)
async def test_non_owner_gets_not_found_never_forbidden(client: AsyncClient, auth_as, db_conn, method, url, body):
    auth_as(OTHER_USER_ID)
    # owner-restricted lookup finds nothing for someone else's list
    db_conn.fetchrow.return_value = None

    response = await client.request(method, url, json=body)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "List not found"
    db_conn.execute.assert_not_awaited()
