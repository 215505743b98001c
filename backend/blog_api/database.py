"""
Blog API Backend - Database Connection Pool
============================================

What:  The `Database` handle: async SQLAlchemy engine (connection pool) plus
       session factory, with an explicit create/dispose lifecycle.
How:   Built once by the application lifespan from Settings, published on
       `app.state`, and handed to the repository. Each repository call opens
       its own session, which commits on success, rolls back on error and
       always returns its connection to the pool.

Connection Pooling (AsyncAdaptedQueuePool for every backend):
    pool_size:      Persistent connections (default 10)
    max_overflow:   Temporary extra connections (default 0, so pool_size is a hard bound)
    pool_timeout:   Maximum wait for a free connection; exceeding it raises
                    sqlalchemy.exc.TimeoutError, surfaced to clients as 503
    pool_pre_ping:  Validates connections before use
    pool_recycle:   Recycles connections every hour
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool

from blog_api.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Holds the shared metadata used by `Database.create_all()` and by Alembic.
    """
    pass


class Database:
    """
    Owns the connection pool for one application instance.

    Example:
        database = Database.from_settings(settings)
        async with database.session() as session:
            await session.execute(select(Post))
        await database.dispose()
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 0,
        pool_timeout: float = 30.0,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        self.pool_timeout = pool_timeout
        self.engine: AsyncEngine = create_async_engine(
            url,
            poolclass=AsyncAdaptedQueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=pool_pre_ping,
            pool_recycle=3600,
            echo=echo,
        )
        # expire_on_commit=False keeps loaded attributes readable after the
        # session has closed and the connection went back to the pool
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Builds a Database using the pool values from Settings."""
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=settings.db_pool_pre_ping,
            echo=settings.log_level == "DEBUG",
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provides a session scoped to one unit of work.

        How it works:
            1. Creates a new session from the factory
            2. Yields it to the caller (the caller performs statements)
            3. On success: commits the transaction
            4. On error: rolls back the transaction and re-raises
            5. Always: closes the session (returns the connection to the pool)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def create_all(self) -> None:
        """Creates missing tables for every model registered on Base."""
        # Imported here so the model registers with Base.metadata
        from blog_api.models import post  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        """Runs SELECT 1 through the pool; raises if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        """Closes every pooled connection. Called at application shutdown."""
        await self.engine.dispose()
