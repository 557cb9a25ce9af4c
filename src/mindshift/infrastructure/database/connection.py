"""
Archive Database Connection

Async SQLAlchemy engine behind the write-only archive. PostgreSQL in
deployed environments, aiosqlite for local runs and tests.

SECURITY: Connection strings carry credentials and are never logged.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from mindshift.config.logging_config import get_logger
from mindshift.config.settings import DatabaseSettings

logger = get_logger(__name__)

POOL_RECYCLE_SECONDS = 3600


class Base(DeclarativeBase):
    """Declarative base for the archive tables."""


class DatabaseNotReady(RuntimeError):
    def __init__(self) -> None:
        super().__init__("Archive database not initialized, call initialize() first")


class DatabaseManager:
    """
    Owns the archive engine and hands out unit-of-work sessions.

    Usage:
        db = DatabaseManager(settings.database)
        await db.initialize()
        async with db.session() as session:
            session.add(row)
        await db.close()
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None, echo: bool = False) -> None:
        self._settings = settings or DatabaseSettings()
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def _engine_options(self, url: str) -> dict:
        options: dict = {"echo": self._echo, "pool_pre_ping": True}
        # SQLite uses a static pool, sizing only applies to server backends
        if make_url(url).get_backend_name() != "sqlite":
            options.update(
                pool_size=self._settings.pool_size,
                max_overflow=self._settings.max_overflow,
                pool_recycle=POOL_RECYCLE_SECONDS,
            )
        return options

    async def initialize(self) -> None:
        if self._engine is not None:
            return

        url = self._settings.async_url
        self._engine = create_async_engine(url, **self._engine_options(url))
        self._sessions = async_sessionmaker(
            bind=self._engine,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Archive database ready", backend=make_url(url).get_backend_name())

    async def create_tables(self) -> None:
        """Create the archive schema directly. Deployed databases use Alembic."""
        if self._engine is None:
            raise DatabaseNotReady()

        from mindshift.infrastructure.database import models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("Archive database closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session that commits on clean exit and rolls back on error."""
        if self._sessions is None:
            raise DatabaseNotReady()

        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> bool:
        """True if a trivial query round-trips."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Archive database health check failed", error=type(e).__name__)
            return False
        return True
