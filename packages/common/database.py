"""
Database session management for SQLAlchemy with async support

The catalog database is read-only from the engine's point of view. Supports
explicit init (service startup) and lazy init from DATABASE_URL (scripts, jobs).
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from packages.common.config import get_settings


class DatabaseSessionManager:
    """Manage database connections and sessions"""

    def __init__(self):
        self._engine = None
        self._sessionmaker = None
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        """Check if session manager is initialized"""
        return self._sessionmaker is not None

    async def init(self, database_url: str, **engine_kwargs):
        """Initialize database engine and session maker"""
        if self.initialized:
            return

        async with self._init_lock:  # Double-checked locking
            if self.initialized:
                return

            # Convert postgresql:// to postgresql+asyncpg://
            if database_url.startswith("postgresql://"):
                database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

            default_kwargs = {
                "echo": engine_kwargs.get("echo", False),
                "pool_pre_ping": True,
            }
            # SQLite (tests, local fixtures) has no connection pool sizing
            if not database_url.startswith("sqlite"):
                default_kwargs.update({
                    "pool_size": 10,
                    "max_overflow": 10,
                    "pool_recycle": 3600,
                })
            default_kwargs.update(engine_kwargs)

            self._engine = create_async_engine(database_url, **default_kwargs)

            self._sessionmaker = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

    async def close(self):
        """Close database connections"""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for read-only database sessions"""
        if not self.initialized:
            await _ensure_initialized(self)

        async with self._sessionmaker() as session:
            try:
                yield session
            finally:
                # Catalog access never writes
                await session.rollback()


async def _ensure_initialized(manager: DatabaseSessionManager):
    """
    Lazily initialize from settings.

    Allows scripts to work without an explicit init() call.
    """
    settings = get_settings()
    if not settings.database_url:
        raise RuntimeError(
            "DATABASE_URL not set and session manager not initialized. "
            "Call sessionmanager.init(DATABASE_URL) explicitly in startup."
        )
    await manager.init(settings.database_url, echo=settings.sql_echo)


# Global session manager instance
sessionmanager = DatabaseSessionManager()
