"""
Database Layer

Async SQLAlchemy 2.0 setup with connection pooling and session management.
Uses asyncpg as the PostgreSQL driver for non-blocking I/O.

Design:
    - One ``Database`` per process, built in the application lifespan and
      handed to request handlers through FastAPI dependencies.
    - ``connect`` retries the initial probe a bounded number of times with
      a fixed delay; individual queries are never retried.
    - ``storage_errors`` translates driver/ORM failures into StorageError.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from lectern.core.config import Settings
from lectern.core.exceptions import StorageError
from lectern.models.base import Base

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the async engine (connection pool) and the session factory.

    The engine is created eagerly but no connection is opened until
    ``connect`` or the first query. SQLite URLs (used in tests) get a
    StaticPool so an in-memory database is shared across sessions.

    Usage::

        database = Database.from_settings(settings)
        await database.connect()
        async with database.session() as session:
            ...
        await database.dispose()
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 0,
        pool_timeout: float = 30.0,
        connect_retries: int = 5,
        connect_delay: float = 5.0,
    ) -> None:
        engine_options: dict[str, Any]
        if url.startswith("sqlite"):
            engine_options = {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        else:
            # Saturated pool: callers queue for up to pool_timeout seconds
            engine_options = {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": pool_timeout,
                "pool_pre_ping": True,
            }

        self._engine: AsyncEngine = create_async_engine(
            url, echo=False, **engine_options
        )
        # expire_on_commit=False: prevents implicit I/O after commit when accessing attributes
        self._session_factory = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
        )
        self._connect_retries = max(1, connect_retries)
        self._connect_delay = connect_delay

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        return cls(
            settings.DATABASE_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            connect_retries=settings.DB_CONNECT_RETRIES,
            connect_delay=settings.DB_CONNECT_DELAY,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def connect(self) -> None:
        """
        Verify connectivity, retrying with a fixed delay.

        Raises:
            StorageError: If every attempt fails.
        """
        for attempt in range(1, self._connect_retries + 1):
            try:
                async with self._engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                logger.info("Database connection established")
                return
            except (SQLAlchemyError, OSError) as exc:
                logger.warning(
                    "Database connection failed (%d/%d): %s",
                    attempt,
                    self._connect_retries,
                    exc,
                )
                if attempt == self._connect_retries:
                    raise StorageError(
                        f"Could not connect to database after {attempt} attempts"
                    ) from exc
                await asyncio.sleep(self._connect_delay)

    def session(self) -> AsyncSession:
        """Open a new session; use as ``async with database.session() as s``."""
        return self._session_factory()

    async def create_all(self) -> None:
        """Create every table known to the ORM metadata (tests, local setup)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close all pooled connections at shutdown."""
        await self._engine.dispose()
        logger.info("Database engine disposed")


@asynccontextmanager
async def storage_errors(session: AsyncSession) -> AsyncIterator[None]:
    """
    Roll back and re-raise persistence failures as StorageError.

    Usage::

        async with storage_errors(session):
            await session.execute(stmt)
    """
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Database query failed: %s", exc)
        await session.rollback()
        raise StorageError(str(exc)) from exc
