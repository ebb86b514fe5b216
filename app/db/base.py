# app/db/base.py
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from app.core.config import settings, BASE_DIR

logger = logging.getLogger(__name__)

_VALID_SSL_MODES = ["disable", "allow", "prefer", "require", "verify-ca", "verify-full"]

# Global pool, owned by the FastAPI lifespan
db_pool: Optional[asyncpg.Pool] = None


class PoolExhaustedError(Exception):
    """No pooled connection became free within DB_ACQUIRE_TIMEOUT."""


def _check_ssl_config() -> None:
    """Fail fast on SSL settings that can never produce a working pool."""
    if settings.DB_SSL_MODE not in _VALID_SSL_MODES:
        logger.critical("Invalid DB_SSL_MODE configured: %s", settings.DB_SSL_MODE)
        raise ValueError(f"Invalid DB_SSL_MODE configured: {settings.DB_SSL_MODE}")

    if settings.DB_SSL_MODE in ["verify-ca", "verify-full"]:
        if not settings.DB_CA_CERT_FILE:
            logger.critical("DB_SSL_MODE=%s requires DB_CA_CERT_FILE.", settings.DB_SSL_MODE)
            raise ValueError("Database CA certificate file not configured for required SSL mode.")
        ca_cert_path = os.path.join(BASE_DIR, "certs", settings.DB_CA_CERT_FILE)
        if not os.path.exists(ca_cert_path):
            logger.critical("Database CA certificate file not found at: %s", ca_cert_path)
            raise FileNotFoundError(f"Database CA certificate file not found: {ca_cert_path}")
        logger.info("Using Database CA certificate file %s for sslmode=%s", ca_cert_path, settings.DB_SSL_MODE)


async def init_db_pool(retries: int = 5, delay_seconds: int = 5) -> None:
    """Initializes the asyncpg connection pool, retrying while the DB comes up."""
    global db_pool
    if db_pool:
        logger.warning("Database pool already initialized.")
        return

    logger.info("Initializing asyncpg database pool...")
    try:
        _check_ssl_config()
    except (FileNotFoundError, ValueError) as e:
        # Configuration errors need a manual fix, no point retrying
        raise RuntimeError("Database configuration error.") from e

    while retries > 0:
        try:
            db_pool = await asyncpg.create_pool(
                dsn=settings.DATABASE_URL,
                min_size=settings.DB_POOL_MIN_SIZE,
                max_size=settings.DB_POOL_MAX_SIZE,
                command_timeout=60,
            )
            async with db_pool.acquire() as conn:
                await conn.execute("SELECT 1")
            logger.info(
                "Asyncpg database pool initialized and connection tested (min: %s, max: %s).",
                settings.DB_POOL_MIN_SIZE,
                settings.DB_POOL_MAX_SIZE,
            )
            return
        except (OSError, asyncpg.PostgresError) as e:
            retries -= 1
            logger.warning(
                "Database pool initialization failed (%s: %s), retrying in %ss (%s left)...",
                type(e).__name__, e, delay_seconds, retries,
            )
            if retries == 0:
                logger.critical("Database pool initialization failed after multiple retries.", exc_info=True)
                db_pool = None
                raise RuntimeError("Failed to connect to database after multiple retries.") from e
            await asyncio.sleep(delay_seconds)
        except Exception as e:
            logger.critical("Unexpected error during database pool initialization: %s", e, exc_info=True)
            db_pool = None
            raise RuntimeError("Unexpected error initializing database pool.") from e


async def close_db_pool() -> None:
    """Closes the asyncpg connection pool gracefully."""
    global db_pool
    if db_pool is None:
        logger.warning("Attempted to close DB pool, but it was not initialized.")
        return

    logger.info("Closing asyncpg database pool...")
    try:
        await db_pool.close()
        logger.info("Asyncpg database pool closed.")
    except Exception as e:
        logger.error("Error while closing the database pool: %s", e, exc_info=True)
    finally:
        db_pool = None


@asynccontextmanager
async def borrow_connection(pool: asyncpg.Pool) -> AsyncIterator[asyncpg.Connection]:
    """
    Borrow one pooled connection and hand it back on exit.

    Waiting is bounded by DB_ACQUIRE_TIMEOUT; an exhausted pool raises
    PoolExhaustedError instead of blocking the request forever.
    """
    try:
        conn = await pool.acquire(timeout=settings.DB_ACQUIRE_TIMEOUT)
    except asyncio.TimeoutError as exc:
        logger.error("No database connection free after %ss.", settings.DB_ACQUIRE_TIMEOUT)
        raise PoolExhaustedError("No database connection available.") from exc
    try:
        yield conn
    finally:
        await pool.release(conn)
