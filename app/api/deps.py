# app/api/deps.py
import logging
from typing import AsyncGenerator, Callable, Dict, List, Optional

import asyncpg
from fastapi import Depends, HTTPException, Path, Query, Request, status
from firebase_admin import auth as firebase_auth

from app.core.config import settings
from app.crud import crud_list, crud_user
from app.db import base as db_base
from app.schemas.list import MAX_DB_ID
from app.schemas.page import ContributorFilter, Order, PageOptions
from app.schemas.token import FirebaseTokenData

logger = logging.getLogger(__name__)

UNAUTH_TEXT = "Could not validate credentials"
LIST_NOT_FOUND_TEXT = "List not found"


# --- Database Dependencies ---
async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    FastAPI dependency that provides an asyncpg connection from the pool.
    The connection is released when the request finishes.
    """
    if not db_base.db_pool:
        logger.error("Database pool is not available when trying to get connection.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service is not available.",
        )

    async with db_base.borrow_connection(db_base.db_pool) as conn:
        yield conn


async def get_db_pool() -> asyncpg.Pool:
    """The pool itself, for code paths that fan out over several connections."""
    if not db_base.db_pool:
        logger.error("Database pool is not available for fan-out.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service is not available.",
        )
    return db_base.db_pool


# --- Authentication Dependencies ---
def _unauthorized(detail: str = UNAUTH_TEXT) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def firebase_verify_token(token: str) -> FirebaseTokenData:
    """
    Verifies a Firebase ID token and converts the decoded claims into
    FirebaseTokenData. Raises 401 on any failure.
    """
    try:
        claims = firebase_auth.verify_id_token(token)
    except Exception as exc:
        logger.warning("Firebase token verification failed: %s", exc)
        raise _unauthorized("Invalid Firebase token") from exc

    return FirebaseTokenData(
        uid=claims.get("uid") or claims.get("user_id"),
        email=claims.get("email"),
    )


async def get_verified_token_data(request: Request) -> FirebaseTokenData:
    auth_header: Optional[str] = request.headers.get("Authorization")
    if not auth_header:
        raise _unauthorized()

    try:
        scheme, token = auth_header.split(" ", 1)
    except ValueError:
        raise _unauthorized()

    if scheme.lower() != "bearer" or not token:
        raise _unauthorized()

    # Test environment accepts the bare Firebase UID as the token
    if settings.ENVIRONMENT == "test" and "." not in token:
        return FirebaseTokenData(uid=token)

    return await firebase_verify_token(token)


async def get_current_user_id(
    pool: asyncpg.Pool = Depends(get_db_pool),
    token_data: FirebaseTokenData = Depends(get_verified_token_data),
) -> int:
    """
    The caller's database id, resolved from the verified token.
    A valid token without a user row is treated as unauthenticated.

    Uses its own short-lived connection so authentication never holds one
    while the route waits for another.
    """
    try:
        async with db_base.borrow_connection(pool) as db:
            user_id = await crud_user.get_user_id_by_firebase_uid(db=db, firebase_uid=token_data.uid)
    except crud_user.DatabaseInteractionError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error retrieving user information.",
        )
    if user_id is None:
        logger.warning("No user row for Firebase UID %s", token_data.uid)
        raise _unauthorized()
    return user_id


# --- List Access Dependencies ---
async def resolve_list(
    db: asyncpg.Connection, list_id: int, user_id: int, require_owner: bool
) -> asyncpg.Record:
    try:
        return await crud_list.get_list_for_user(
            db=db, list_id=list_id, user_id=user_id, require_owner=require_owner
        )
    except crud_list.ListNotFoundError:
        # Hidden and missing lists look the same to the caller
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=LIST_NOT_FOUND_TEXT)
    except crud_list.DatabaseInteractionError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database error fetching list",
        )


async def get_visible_list(
    list_id: int = Path(..., gt=0, le=MAX_DB_ID, description="The ID of the list"),
    current_user_id: int = Depends(get_current_user_id),
    db: asyncpg.Connection = Depends(get_db),
) -> asyncpg.Record:
    """The list if it is public or owned by the caller; 404 otherwise."""
    return await resolve_list(db, list_id, current_user_id, require_owner=False)


async def get_owned_list(
    list_id: int = Path(..., gt=0, le=MAX_DB_ID, description="The ID of the list"),
    current_user_id: int = Depends(get_current_user_id),
    db: asyncpg.Connection = Depends(get_db),
) -> asyncpg.Record:
    """The list only if the caller owns it; 404 otherwise. Use before any mutation."""
    return await resolve_list(db, list_id, current_user_id, require_owner=True)


# --- Pagination Dependencies ---
def _check_order_by(order_by: str, sortable: Dict[str, str]) -> None:
    if order_by not in sortable:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot order by '{order_by}'. Allowed: {', '.join(sorted(sortable))}",
        )


def page_options(
    sortable: Dict[str, str],
    default_order_by: str = "created_at",
    default_order: Order = Order.DESC,
) -> Callable[..., PageOptions]:
    """Build a query-string dependency for `PageOptions` limited to `sortable` fields."""

    async def _page_options(
        page: int = Query(1, ge=1, description="Page number to retrieve"),
        limit: int = Query(
            settings.PAGE_LIMIT_DEFAULT, ge=1, le=settings.PAGE_LIMIT_MAX, description="Items per page"
        ),
        order_by: str = Query(default_order_by, alias="orderBy", description="Field to order by"),
        order: Order = Query(default_order, description="ASC or DESC"),
    ) -> PageOptions:
        _check_order_by(order_by, sortable)
        return PageOptions(page=page, limit=limit, order_by=order_by, order=order)

    return _page_options


def contributor_filter(
    sortable: Dict[str, str],
    default_order_by: str = "username",
    default_order: Order = Order.ASC,
) -> Callable[..., ContributorFilter]:
    """Like `page_options`, plus the contributor search filters."""

    async def _contributor_filter(
        page: int = Query(1, ge=1, description="Page number to retrieve"),
        limit: int = Query(
            settings.PAGE_LIMIT_DEFAULT, ge=1, le=settings.PAGE_LIMIT_MAX, description="Items per page"
        ),
        order_by: str = Query(default_order_by, alias="orderBy", description="Field to order by"),
        order: Order = Query(default_order, description="ASC or DESC"),
        contributor: Optional[str] = Query(None, min_length=1, max_length=100, description="Name search"),
        location: Optional[List[str]] = Query(None, description="One or more locations"),
        timezone: Optional[str] = Query(None, max_length=100),
    ) -> ContributorFilter:
        _check_order_by(order_by, sortable)
        return ContributorFilter(
            page=page,
            limit=limit,
            order_by=order_by,
            order=order,
            contributor=contributor,
            location=location,
            timezone=timezone,
        )

    return _contributor_filter
