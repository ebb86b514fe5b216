"""
CRUD helpers for list contributors (the list ↔ user relationship) and the
global contributor search.

Single-row helpers take an `asyncpg.Connection`. The fan-out helpers take the
pool instead: one connection cannot run statements concurrently, so every
attempt acquires its own.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Sequence, Tuple

import asyncpg

from app.crud.crud_list import ListNotFoundError
from app.db.base import borrow_connection
from app.schemas.page import ContributorFilter, PageOptions
from app.utils.pagination import order_clause

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
#  Custom error types                                                         #
# --------------------------------------------------------------------------- #
class ContributorNotFoundError(Exception):
    """The contributor id does not reference an existing user."""

    def __init__(self, contributor_id: int):
        super().__init__(f"Contributor {contributor_id} not found")
        self.contributor_id = contributor_id


class DatabaseInteractionError(Exception):
    """Any unexpected DB-layer failure."""


# --------------------------------------------------------------------------- #
#  Constants                                                                  #
# --------------------------------------------------------------------------- #
_RELATIONSHIP_COLUMNS = "id, list_id, contributor_id, created_at"

CONTRIBUTOR_SORT_COLUMNS = {
    "created_at": "c.created_at",
    "id": "c.id",
}

IDENTITY_SORT_COLUMNS = {
    "username": "u.username",
    "display_name": "u.display_name",
    "created_at": "u.created_at",
    "id": "u.id",
}


def _escape_like(term: str) -> str:
    """Make `%` and `_` in user input match literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# --------------------------------------------------------------------------- #
#  Queries                                                                    #
# --------------------------------------------------------------------------- #
async def get_contributors_by_filter(
    db: asyncpg.Connection, filters: ContributorFilter
) -> Tuple[List[asyncpg.Record], int]:
    """
    Search every user that could be added as a contributor.

    Not scoped to any list; used for autocomplete. `contributor` matches
    username or display name case-insensitively.
    """
    where_parts: list[str] = []
    params: list[Any] = []

    if filters.contributor:
        params.append(f"%{_escape_like(filters.contributor.lower())}%")
        where_parts.append(
            f"(LOWER(u.username) LIKE ${len(params)} ESCAPE '\\'"
            f" OR LOWER(u.display_name) LIKE ${len(params)} ESCAPE '\\')"
        )
    if filters.location:
        params.append(filters.location)
        where_parts.append(f"u.location = ANY(${len(params)}::text[])")
    if filters.timezone:
        params.append(filters.timezone)
        where_parts.append(f"u.timezone = ${len(params)}")

    where_sql = f"WHERE {' AND '.join(where_parts)}" if where_parts else ""
    base_from = f"FROM users u {where_sql}"

    try:
        total: int = await db.fetchval(f"SELECT COUNT(*) {base_from}", *params) or 0
        if total == 0 or filters.offset >= total:
            return [], total

        params.extend([filters.limit, filters.offset])
        rows = await db.fetch(
            f"""
            SELECT u.id, u.username, u.display_name, u.profile_picture, u.location, u.timezone
            {base_from}
            {order_clause(filters, IDENTITY_SORT_COLUMNS, "u.id")}
            LIMIT ${len(params) - 1} OFFSET ${len(params)}
            """,
            *params,
        )
        return rows, total
    except Exception as exc:
        logger.error("Error searching contributors: %s", exc, exc_info=True)
        raise DatabaseInteractionError("Database error searching contributors.") from exc


async def get_list_contributors_paginated(
    db: asyncpg.Connection, list_id: int, options: PageOptions
) -> Tuple[List[asyncpg.Record], int]:
    """
    Return (records, total) of the relationships on `list_id`.
    Visibility of the list is the caller's job.
    """
    try:
        total: int = await db.fetchval(
            "SELECT COUNT(*) FROM user_list_contributors WHERE list_id = $1", list_id
        ) or 0
        if total == 0 or options.offset >= total:
            return [], total

        rows = await db.fetch(
            f"""
            SELECT c.id, c.list_id, c.contributor_id, c.created_at
            FROM user_list_contributors c
            WHERE c.list_id = $1
            {order_clause(options, CONTRIBUTOR_SORT_COLUMNS, "c.id")}
            LIMIT $2 OFFSET $3
            """,
            list_id,
            options.limit,
            options.offset,
        )
        return rows, total
    except Exception as exc:
        logger.error("Error paginating contributors of list %s: %s", list_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching list contributors.") from exc


# --------------------------------------------------------------------------- #
#  Mutations                                                                  #
# --------------------------------------------------------------------------- #
async def add_contributor(
    db: asyncpg.Connection, list_id: int, contributor_id: int
) -> asyncpg.Record:
    """
    Insert one relationship and return it.

    Not idempotent: adding the same contributor twice creates two rows.
    """
    try:
        rec = await db.fetchrow(
            f"""
            INSERT INTO user_list_contributors (list_id, contributor_id, created_at)
            SELECT $1, u.id, now()
            FROM users u
            WHERE u.id = $2
            RETURNING {_RELATIONSHIP_COLUMNS}
            """,
            list_id,
            contributor_id,
        )
    except asyncpg.ForeignKeyViolationError as fk:
        # users row is checked by the SELECT, so the list went away
        logger.warning("List %s vanished while adding contributor %s", list_id, contributor_id)
        raise ListNotFoundError(list_id) from fk
    except Exception as exc:
        logger.error(
            "Error adding contributor %s to list %s: %s", contributor_id, list_id, exc, exc_info=True
        )
        raise DatabaseInteractionError("Database error adding contributor.") from exc

    if rec is None:
        raise ContributorNotFoundError(contributor_id)

    logger.info("Added contributor %s to list %s (relationship %s)", contributor_id, list_id, rec["id"])
    return rec


async def _add_with_own_connection(
    pool: asyncpg.Pool, list_id: int, contributor_id: int
) -> asyncpg.Record:
    async with borrow_connection(pool) as conn:
        return await add_contributor(conn, list_id, contributor_id)


async def add_contributors(
    pool: asyncpg.Pool, list_id: int, contributor_ids: Sequence[int]
) -> List[asyncpg.Record]:
    """
    Add every contributor or fail.

    All inserts run concurrently and the first failure is re-raised. Siblings
    are neither cancelled nor rolled back, so inserts that already succeeded
    stay committed.
    """
    records = await asyncio.gather(
        *(_add_with_own_connection(pool, list_id, cid) for cid in contributor_ids)
    )
    return list(records)


async def seed_contributors(
    pool: asyncpg.Pool, list_id: int, contributor_ids: Sequence[int]
) -> List[asyncpg.Record]:
    """
    Best-effort variant used right after a list is created.

    Waits for every insert to settle, logs and drops the failures, and returns
    the relationships that were created.
    """
    outcomes = await asyncio.gather(
        *(_add_with_own_connection(pool, list_id, cid) for cid in contributor_ids),
        return_exceptions=True,
    )

    created: List[asyncpg.Record] = []
    for contributor_id, outcome in zip(contributor_ids, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning(
                "Skipping contributor %s while seeding list %s: %s", contributor_id, list_id, outcome
            )
            continue
        created.append(outcome)

    if len(created) != len(contributor_ids):
        logger.info(
            "Seeded %s of %s contributors on list %s", len(created), len(contributor_ids), list_id
        )
    return created


async def delete_contributor(
    db: asyncpg.Connection, list_id: int, relationship_id: int
) -> bool:
    """Remove one relationship by its own id; False if it isn't on `list_id`."""
    try:
        status = await db.execute(
            "DELETE FROM user_list_contributors WHERE id = $1 AND list_id = $2",
            relationship_id,
            list_id,
        )
        removed = int(status.split(" ")[1]) > 0
        if removed:
            logger.info("Removed contributor relationship %s from list %s", relationship_id, list_id)
        return removed
    except Exception as exc:
        logger.error(
            "Error removing relationship %s from list %s: %s", relationship_id, list_id, exc, exc_info=True
        )
        raise DatabaseInteractionError("Database error removing contributor.") from exc
