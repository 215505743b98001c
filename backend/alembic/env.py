"""
Alembic environment for the posts schema.

Target URL, in order of precedence:
    1. alembic -x database_url=sqlite+aiosqlite:///./blog.db upgrade head
    2. DATABASE_URL / .env through blog_api.config.Settings

SQLite cannot ALTER most column properties, so migrations run in batch mode
there; PostgreSQL (asyncpg) migrates in place.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine

from blog_api.config import Settings
from blog_api.database import Base
from blog_api.models import post  # noqa: F401  (registers Post on Base.metadata)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def database_url() -> str:
    return context.get_x_argument(as_dictionary=True).get("database_url") or Settings().database_url


def configure_options(url: str) -> dict:
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "render_as_batch": make_url(url).get_backend_name() == "sqlite",
    }


def run_migrations_offline(url: str) -> None:
    """Print the posts DDL instead of executing it (alembic upgrade --sql)."""
    context.configure(url=url, literal_binds=True, **configure_options(url))
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection, url: str) -> None:
    context.configure(connection=connection, **configure_options(url))
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online(url: str) -> None:
    # One short-lived connection; the application pool is not involved
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate, url)
    finally:
        await engine.dispose()


url = database_url()
if context.is_offline_mode():
    run_migrations_offline(url)
else:
    asyncio.run(run_migrations_online(url))
