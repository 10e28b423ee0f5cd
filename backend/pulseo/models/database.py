"""Database setup and connection management."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ..config import Config

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (SQLite stores no offset)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the engine and session factory for one datastore.

    Constructed explicitly and opened at process start (or per test), then
    closed at shutdown. Request handlers reach it through ``app.state``.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_config(cls, config: Config) -> "Database":
        db_path = config.database.path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return cls(
            f"sqlite+aiosqlite:///{db_path}",
            echo=config.logging.level.lower() == "debug",
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not opened. Call open() first.")
        return self._engine

    async def open(self) -> None:
        """Create the engine and make sure all tables exist."""
        if self._engine is not None:
            return

        self._engine = create_async_engine(self.url, echo=self.echo)
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine.sync_engine, "connect", _set_sqlite_pragmas)

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        # Import all models to register them
        from . import column, refresh_token, task, user  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database opened")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database closed")

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that commits on success and rolls back on error."""
        if self._session_factory is None:
            raise RuntimeError("Database not opened. Call open() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the current request."""
    database: Database = request.app.state.database
    async for session in database.session():
        yield session
