"""
CRUD helpers for user lists.

Every public function:
• takes an `asyncpg.Connection`
• returns plain Python data (record / list / bool) or raises a custom error
• never leaks whether a list exists to someone who may not see it
"""
from __future__ import annotations

import logging
from typing import Any, List, Tuple

import asyncpg

from app.schemas import list as list_schemas
from app.schemas.page import PageOptions
from app.utils.pagination import order_clause

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
#  Custom error types                                                         #
# --------------------------------------------------------------------------- #
class ListNotFoundError(Exception):
    """List does not exist, or exists but is hidden from the caller."""


class DatabaseInteractionError(Exception):
    """Any unexpected DB-layer failure."""


# --------------------------------------------------------------------------- #
#  Constants                                                                  #
# --------------------------------------------------------------------------- #
_COLUMNS = "id, owner_id, name, is_public, created_at, updated_at"

# public `orderBy` value → SQL expression
LIST_SORT_COLUMNS = {
    "created_at": "l.created_at",
    "updated_at": "l.updated_at",
    "name": "l.name",
    "id": "l.id",
}


# --------------------------------------------------------------------------- #
#  Core CRUD                                                                  #
# --------------------------------------------------------------------------- #
async def create_list(
    db: asyncpg.Connection, list_in: list_schemas.ListCreate, owner_id: int
) -> asyncpg.Record:
    """Insert a new list row owned by `owner_id` and return it."""
    try:
        rec = await db.fetchrow(
            f"""
            INSERT INTO user_lists (owner_id, name, is_public, created_at, updated_at)
            VALUES ($1, $2, $3, now(), now())
            RETURNING {_COLUMNS}
            """,
            owner_id,
            list_in.name,
            list_in.is_public,
        )
        if rec is None:
            raise DatabaseInteractionError("Insert returned no row.")

        logger.info("Created list %s for owner %s", rec["id"], owner_id)
        return rec

    except DatabaseInteractionError:
        raise
    except Exception as exc:
        logger.error("Error creating list for owner %s: %s", owner_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error creating list.") from exc


async def get_list_for_user(
    db: asyncpg.Connection, list_id: int, user_id: int, *, require_owner: bool
) -> asyncpg.Record:
    """
    The single lookup behind every list access check.

    With `require_owner` the row is only returned to its owner; otherwise a
    public list is visible to anyone. Missing, private and not-owned lists all
    raise the same `ListNotFoundError`.
    """
    visibility = "owner_id = $2" if require_owner else "(owner_id = $2 OR is_public)"
    try:
        rec = await db.fetchrow(
            f"SELECT {_COLUMNS} FROM user_lists WHERE id = $1 AND {visibility}",
            list_id,
            user_id,
        )
    except Exception as exc:
        logger.error("Error fetching list %s for user %s: %s", list_id, user_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching list.") from exc

    if rec is None:
        logger.debug(
            "List %s not visible to user %s (require_owner=%s)", list_id, user_id, require_owner
        )
        raise ListNotFoundError(list_id)
    return rec


async def get_user_lists_paginated(
    db: asyncpg.Connection, owner_id: int, options: PageOptions
) -> Tuple[List[asyncpg.Record], int]:
    """Return (records, total) for the owner's own lists."""
    try:
        total: int = await db.fetchval(
            "SELECT COUNT(*) FROM user_lists WHERE owner_id = $1", owner_id
        ) or 0
        if total == 0 or options.offset >= total:
            return [], total

        rows = await db.fetch(
            f"""
            SELECT l.id, l.owner_id, l.name, l.is_public, l.created_at, l.updated_at
            FROM user_lists l
            WHERE l.owner_id = $1
            {order_clause(options, LIST_SORT_COLUMNS, "l.id")}
            LIMIT $2 OFFSET $3
            """,
            owner_id,
            options.limit,
            options.offset,
        )
        return rows, total
    except Exception as exc:
        logger.error("Error paginating lists for owner %s: %s", owner_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error fetching user lists.") from exc


# --------------------------------------------------------------------------- #
#  Update / delete                                                            #
# --------------------------------------------------------------------------- #
async def update_list(
    db: asyncpg.Connection, list_id: int, list_in: list_schemas.ListUpdate
) -> bool:
    """
    PATCH the supplied fields of a list.

    Returns True if a row was written, False when nothing was supplied or the
    row has vanished. Callers re-read the list afterwards.
    """
    fields = list_in.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        return False

    sets: list[str] = []
    params: list[Any] = []
    for column in ("name", "is_public"):
        if column in fields:
            params.append(fields[column])
            sets.append(f"{column} = ${len(params)}")
    params.append(list_id)

    try:
        status = await db.execute(
            f"""
            UPDATE user_lists
            SET {', '.join(sets)}, updated_at = now()
            WHERE id = ${len(params)}
            """,
            *params,
        )
        updated = int(status.split(" ")[1]) > 0
        if updated:
            logger.info("Updated list %s fields %s", list_id, sorted(fields))
        return updated
    except Exception as exc:
        logger.error("Error updating list %s: %s", list_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error updating list.") from exc


async def delete_list(db: asyncpg.Connection, list_id: int) -> bool:
    """
    Delete a list together with its contributor relationships.

    True if the list row was deleted, False if the id did not exist.
    """
    try:
        async with db.transaction():
            await db.execute("DELETE FROM user_list_contributors WHERE list_id = $1", list_id)
            status = await db.execute("DELETE FROM user_lists WHERE id = $1", list_id)
        deleted = int(status.split(" ")[1]) > 0
        if deleted:
            logger.info("Deleted list %s", list_id)
        return deleted
    except Exception as exc:
        logger.error("Error deleting list %s: %s", list_id, exc, exc_info=True)
        raise DatabaseInteractionError("Database error deleting list.") from exc
