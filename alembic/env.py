from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import MetaData, pool
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

# app.core.config loads .env (or DOTENV_PATH) on import
from app.core.config import settings

# ───── build a clean URL for Alembic ──────────────────────────────
url_obj = make_url(settings.DATABASE_URL)

# libpq-only query keys that asyncpg rejects
bad_keys = {"sslmode", "sslrootcert", "sslcert", "sslkey"}
clean_qs = {k: v for k, v in url_obj.query.items() if k not in bad_keys}

DATABASE_URL = (
    url_obj.set(query=clean_qs)
           .set(drivername="postgresql+asyncpg")
           .render_as_string(hide_password=False)
)

# Migrations are hand-written; there are no ORM models to compare against
target_metadata = MetaData()


def run_migrations_offline() -> None:
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(sync_conn) -> None:
    context.configure(connection=sync_conn, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def do_run_migrations() -> None:
    engine: AsyncEngine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    async with engine.connect() as conn:
        await conn.run_sync(_run_sync)
        await conn.commit()
    await engine.dispose()


def run_migrations_online() -> None:
    asyncio.run(do_run_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
