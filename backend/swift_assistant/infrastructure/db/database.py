"""
Database Configuration for Swift Assistant

Async SQLAlchemy engine and session management. The engine is created
lazily on first use, so the app (and the test suite) can import every
module without a DATABASE_URL.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from swift_assistant.config.settings import settings
from swift_assistant.infrastructure.exceptions import ConfigurationError


_ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
}


def normalize_database_url(database_url: str) -> str:
    """Force the asyncpg driver onto plain postgres:// URLs."""
    for prefix, replacement in _ASYNC_DRIVERS.items():
        if database_url.startswith(prefix):
            return replacement + database_url[len(prefix):]
    return database_url


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool settings for Postgres; SQLite gets the driver defaults."""
    options: Dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
    if database_url.startswith("postgresql"):
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            # Supabase's transaction pooler rejects prepared statements
            connect_args={"statement_cache_size": 0},
        )
    return options


class DatabaseManager:
    """Owns the process-wide engine and its session factory."""

    def __init__(self, database_url: Optional[str] = None):
        self._database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def database_url(self) -> str:
        url = self._database_url or settings.database_url
        if not url:
            raise ConfigurationError(
                "DATABASE_URL is required",
                missing_keys=["DATABASE_URL"],
            )
        return normalize_database_url(url)

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            url = self.database_url
            self._engine = create_async_engine(url, **engine_options(url))
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    async def create_tables(self) -> None:
        """Create all tables from SQLModel metadata (local development only)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get or create the database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work: commit on clean exit, roll back on any error.

    Usage:
        async with get_session_context() as session:
            result = await session.execute(query)
    """
    async with get_db_manager().session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Open the pool and check connectivity (called on app startup)."""
    async with get_db_manager().session_factory() as session:
        await session.execute(text("SELECT 1"))


async def close_db() -> None:
    """Close database connection pool (called on app shutdown)."""
    await get_db_manager().close()
