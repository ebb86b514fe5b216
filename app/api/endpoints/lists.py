# app/api/endpoints/lists.py
import logging

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.api import deps
from app.core.rate_limit import limiter
from app.crud import crud_contributor, crud_list
from app.crud.crud_list import DatabaseInteractionError as ListDBError
from app.crud.crud_list import ListNotFoundError
from app.db.base import borrow_connection
from app.schemas import list as list_schemas
from app.schemas.page import PageOptions
from app.utils.pagination import page_meta

logger = logging.getLogger(__name__)
router = APIRouter()

list_tags = ["Lists"]

list_page_options = deps.page_options(crud_list.LIST_SORT_COLUMNS)


@router.get("", response_model=list_schemas.PaginatedListResponse, tags=list_tags)
@limiter.limit("30/minute")
async def get_lists(
    request: Request,  # For limiter state
    options: PageOptions = Depends(list_page_options),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Get lists owned by the authenticated user (paginated).
    """
    try:
        records, total_items = await crud_list.get_user_lists_paginated(
            db=db, owner_id=current_user_id, options=options
        )
    except ListDBError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error fetching lists")

    return list_schemas.PaginatedListResponse(
        items=[list_schemas.ListResponse.model_validate(dict(r)) for r in records],
        **page_meta(options, total_items),
    )


@router.post("", response_model=list_schemas.ListResponse, status_code=status.HTTP_201_CREATED, tags=list_tags)
@limiter.limit("10/minute")
async def create_list(
    request: Request,  # For limiter state
    list_data: list_schemas.ListCreate,
    current_user_id: int = Depends(deps.get_current_user_id),
    pool: asyncpg.Pool = Depends(deps.get_db_pool),
):
    """
    Create a new list for the authenticated user.

    `contributors` are added on a best-effort basis: ids that cannot be added
    are skipped and the list is returned either way.
    """
    # The insert's connection goes back to the pool before seeding fans out
    try:
        async with borrow_connection(pool) as db:
            created = await crud_list.create_list(db=db, list_in=list_data, owner_id=current_user_id)
    except ListDBError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error creating list")

    if list_data.contributors:
        await crud_contributor.seed_contributors(pool, created["id"], list_data.contributors)

    return list_schemas.ListResponse.model_validate(dict(created))


@router.get("/{list_id}", response_model=list_schemas.ListResponse, tags=list_tags)
@limiter.limit("60/minute")
async def get_list(
    request: Request,  # For limiter state
    list_record: asyncpg.Record = Depends(deps.get_visible_list),
):
    """
    Get a single list. Visible to its owner, or to anyone if it is public.
    """
    return list_schemas.ListResponse.model_validate(dict(list_record))


@router.patch("/{list_id}", response_model=list_schemas.ListResponse, tags=list_tags)
@limiter.limit("20/minute")
async def update_list(
    request: Request,  # For limiter state
    update_data: list_schemas.ListUpdate,
    list_record: asyncpg.Record = Depends(deps.get_owned_list),
    current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Update a list's name or visibility. Owner only.
    Returns the list as stored after the update.
    """
    list_id = list_record["id"]
    try:
        await crud_list.update_list(db=db, list_id=list_id, list_in=update_data)
        refreshed = await crud_list.get_list_for_user(
            db=db, list_id=list_id, user_id=current_user_id, require_owner=True
        )
    except ListNotFoundError:
        # Deleted between the ownership check and the re-read
        logger.warning("List %s disappeared during update", list_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=deps.LIST_NOT_FOUND_TEXT)
    except ListDBError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error updating list")

    return list_schemas.ListResponse.model_validate(dict(refreshed))


@router.delete("/{list_id}", status_code=status.HTTP_204_NO_CONTENT, tags=list_tags)
@limiter.limit("20/minute")
async def delete_list(
    request: Request,  # For limiter state
    list_record: asyncpg.Record = Depends(deps.get_owned_list),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Delete a list and all of its contributor relationships. Owner only.
    """
    list_id = list_record["id"]
    try:
        deleted = await crud_list.delete_list(db=db, list_id=list_id)
    except ListDBError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error deleting list")

    if not deleted:
        logger.warning("List %s not found for delete after ownership check passed.", list_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=deps.LIST_NOT_FOUND_TEXT)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
