# app/api/endpoints/contributors.py
import logging
from typing import List

import asyncpg
from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request, Response, status

from app.api import deps
from app.core.rate_limit import limiter
from app.crud import crud_contributor
from app.crud.crud_contributor import ContributorNotFoundError
from app.crud.crud_contributor import DatabaseInteractionError as ContributorDBError
from app.crud.crud_list import ListNotFoundError
from app.db.base import borrow_connection
from app.schemas import contributor as contributor_schemas
from app.schemas.list import MAX_DB_ID
from app.schemas.page import ContributorFilter, PageOptions
from app.utils.pagination import page_meta

logger = logging.getLogger(__name__)

# Mounted under /lists *before* the list router so "/contributors"
# is not captured by "/{list_id}".
router = APIRouter(tags=["Contributors", "Lists"])

relationship_page_options = deps.page_options(crud_contributor.CONTRIBUTOR_SORT_COLUMNS)
identity_filter = deps.contributor_filter(crud_contributor.IDENTITY_SORT_COLUMNS)


# --------------------------------------------------------------------------- #
#  GET /lists/contributors                                                    #
# --------------------------------------------------------------------------- #
@router.get("/contributors", response_model=contributor_schemas.PaginatedIdentityResponse)
@limiter.limit("60/minute")
async def search_contributors(
    request: Request,
    filters: ContributorFilter = Depends(identity_filter),
    _current_user_id: int = Depends(deps.get_current_user_id),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Search users that can be added as contributors (paginated, filterable).
    """
    try:
        records, total_items = await crud_contributor.get_contributors_by_filter(db=db, filters=filters)
    except ContributorDBError:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error searching contributors")

    return contributor_schemas.PaginatedIdentityResponse(
        items=[contributor_schemas.IdentityResponse.model_validate(dict(r)) for r in records],
        **page_meta(filters, total_items),
    )


# --------------------------------------------------------------------------- #
#  GET /lists/{id}/contributors                                               #
# --------------------------------------------------------------------------- #
@router.get("/{list_id}/contributors", response_model=contributor_schemas.PaginatedContributorResponse)
@limiter.limit("60/minute")
async def get_list_contributors(
    request: Request,
    options: PageOptions = Depends(relationship_page_options),
    list_record: asyncpg.Record = Depends(deps.get_visible_list),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Contributors of one list. The list must be public or owned by the caller.
    """
    list_id = list_record["id"]
    try:
        records, total_items = await crud_contributor.get_list_contributors_paginated(
            db=db, list_id=list_id, options=options
        )
    except ContributorDBError:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error fetching contributors")

    return contributor_schemas.PaginatedContributorResponse(
        items=[contributor_schemas.ContributorResponse.model_validate(dict(r)) for r in records],
        **page_meta(options, total_items),
    )


# --------------------------------------------------------------------------- #
#  POST /lists/{id}/contributors                                              #
# --------------------------------------------------------------------------- #
@router.post(
    "/{list_id}/contributors",
    status_code=status.HTTP_201_CREATED,
    response_model=List[contributor_schemas.ContributorResponse],
)
@limiter.limit("20/minute")
async def add_list_contributors(
    request: Request,
    list_id: int = Path(..., gt=0, le=MAX_DB_ID, description="The ID of the list"),
    payload: contributor_schemas.ContributorsAdd = Body(...),
    current_user_id: int = Depends(deps.get_current_user_id),
    pool: asyncpg.Pool = Depends(deps.get_db_pool),
):
    """
    Add contributors to a list. Owner only.

    All-or-nothing from the caller's point of view: if any id fails the request
    fails. Adds that completed before the failure are not rolled back.
    """
    # Ownership is checked on a connection released before the fan-out
    async with borrow_connection(pool) as db:
        await deps.resolve_list(db, list_id, current_user_id, require_owner=True)

    try:
        records = await crud_contributor.add_contributors(pool, list_id, payload.contributors)
    except ContributorNotFoundError as exc:
        logger.warning("Bulk add to list %s failed: %s", list_id, exc)
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(exc)) from exc
    except ListNotFoundError as exc:
        raise HTTPException(status.HTTP_404_NOT_FOUND, deps.LIST_NOT_FOUND_TEXT) from exc
    except ContributorDBError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error adding contributors") from exc

    return [contributor_schemas.ContributorResponse.model_validate(dict(r)) for r in records]


# --------------------------------------------------------------------------- #
#  DELETE /lists/{id}/contributors/{relationship_id}                          #
# --------------------------------------------------------------------------- #
@router.delete(
    "/{list_id}/contributors/{relationship_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
@limiter.limit("20/minute")
async def remove_list_contributor(
    request: Request,
    relationship_id: int = Path(
        ..., gt=0, le=MAX_DB_ID, description="ID of the contributor relationship, not the user"
    ),
    list_record: asyncpg.Record = Depends(deps.get_owned_list),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Remove one contributor relationship from a list. Owner only.
    """
    list_id = list_record["id"]
    try:
        removed = await crud_contributor.delete_contributor(
            db=db, list_id=list_id, relationship_id=relationship_id
        )
    except ContributorDBError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error removing contributor") from exc

    if not removed:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Contributor not found on this list")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
