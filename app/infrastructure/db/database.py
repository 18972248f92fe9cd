"""
Database Configuration for the Football Analysis Bot

One async engine per process, built from settings.database_url the first
time a repository opens a session. Startup creates the five bot tables
(Alembic owns real migrations) and materializes the global settings row.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from app.config.settings import settings
from app.infrastructure.exceptions import ConfigurationError

# Register table metadata before create_all
from app.infrastructure.db import models  # noqa: F401

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the engine and session factory; both are built on first access."""

    def __init__(self, database_url: Optional[str] = None):
        self._database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    def _connect(self) -> None:
        url = self._database_url or settings.database_url
        if not url:
            raise ConfigurationError("DATABASE_URL is required", missing_keys=["DATABASE_URL"])

        options = {"echo": settings.database_echo}
        # SQLite (local runs) has no server-side pool to size
        if not url.startswith("sqlite"):
            options.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_timeout=settings.database_pool_timeout,
                pool_pre_ping=True,
            )

        self._engine = create_async_engine(url, **options)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False, autoflush=False)
        logger.info("Database engine created")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._connect()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            self._connect()
        return self._sessions

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


@asynccontextmanager
async def get_session_context() -> AsyncIterator[AsyncSession]:
    """
    Session for one repository operation; rolled back if the block raises.

    Guarded updates commit explicitly so they can read the rowcount first;
    the trailing commit here is a no-op for them.
    """
    async with get_db_manager().session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables, check connectivity and seed the settings row."""
    from app.infrastructure.db.repositories.bot_settings_repository import get_bot_settings_repository

    db = get_db_manager()
    await db.create_tables()
    await db.ping()
    bot_settings = await get_bot_settings_repository().get()
    logger.info(
        f"Bot settings loaded: free={bot_settings.free_messages_limit}, "
        f"cost={bot_settings.cost_per_message}, maintenance={bot_settings.maintenance_mode}"
    )


async def close_db() -> None:
    await get_db_manager().dispose()
