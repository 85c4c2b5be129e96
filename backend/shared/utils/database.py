"""
Async SQLAlchemy 2.0 engine and session management for the character store.
Defaults to a local SQLite file through the aiosqlite driver.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.config import Settings, get_settings
from shared.models.orm import Base
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """Owns the engine; hands out read and write sessions."""

    def __init__(self, settings: Settings | None = None, url: str | None = None) -> None:
        self._settings = settings or get_settings()
        self._url = make_url(url or self._settings.database_url)
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_sqlite(self) -> bool:
        return self._url.get_backend_name() == "sqlite"

    def _prepare_sqlite_path(self) -> None:
        database = self._url.database
        if not database or database == ":memory:":
            return
        Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

    async def connect(self) -> None:
        if self.is_sqlite:
            self._prepare_sqlite_path()
        self._engine = create_async_engine(self._url, echo=self._settings.debug)
        self._sessions = async_sessionmaker(bind=self._engine, expire_on_commit=False)
        logger.info("database_connected", url=self._url.render_as_string(hide_password=True))

    async def create_tables(self) -> None:
        """Create the characters table if it does not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("database_disconnected")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DatabaseManager not connected. Call connect() first.")
        return self._engine

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            raise RuntimeError("DatabaseManager not connected. Call connect() first.")
        return self._sessions

    @asynccontextmanager
    async def read_session(self) -> AsyncIterator[AsyncSession]:
        async with self._factory()() as session:
            yield session

    @asynccontextmanager
    async def write_session(self) -> AsyncIterator[AsyncSession]:
        """Commits on clean exit, rolls back and re-raises otherwise."""
        async with self._factory()() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
