"""Async SQLAlchemy engine ownership and request-scoped sessions."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from domugrauds.config import DatabaseSettings
from domugrauds.db.base import Base, import_model_modules


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    """Turn on FK enforcement so account deletes cascade on SQLite."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Pooled engine and session factory owned by one application instance."""

    def __init__(self, settings: DatabaseSettings) -> None:
        self._engine = create_async_engine(
            settings.url,
            echo=settings.echo,
            pool_pre_ping=True,
        )
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self._session_factory = async_sessionmaker(
            bind=self._engine, autoflush=False, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        """Return the underlying async engine."""
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Return the async session factory."""
        return self._session_factory

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield an async database session for request-scoped use."""
        async with self._session_factory() as db_session:
            yield db_session

    async def create_all(self) -> None:
        """Create all mapped tables; used by tests and local bootstrap."""
        import_model_modules()
        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Dispose the engine and close pooled connections."""
        await self._engine.dispose()
