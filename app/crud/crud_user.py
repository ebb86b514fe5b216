# app/crud/crud_user.py
import logging
from typing import Optional

import asyncpg

logger = logging.getLogger(__name__)


class DatabaseInteractionError(Exception):
    """Generic error for unexpected DB issues during CRUD operations."""
    pass


# Identities are owned by the auth side of the platform; this service only reads them.

async def get_user_id_by_firebase_uid(db: asyncpg.Connection, firebase_uid: str) -> Optional[int]:
    """Return the database id for a Firebase UID, or None if no user row exists."""
    logger.debug("Fetching user id by Firebase UID: %s", firebase_uid)
    try:
        return await db.fetchval("SELECT id FROM users WHERE firebase_uid = $1", firebase_uid)
    except Exception as e:
        logger.error("Error fetching user by Firebase UID %s: %s", firebase_uid, e, exc_info=True)
        raise DatabaseInteractionError("Database error fetching user by Firebase UID.") from e
