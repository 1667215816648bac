"""Engine and session lifecycle for the tenant record table."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from connect_engine.common.config import ConnectSettings, get_settings
from connect_engine.common.models import Base

import connect_engine.tenants.models  # noqa: F401  (registers addon_tenants)


def _prepare_sqlite_path(db_url: str) -> None:
    """Create the directory of a file-backed SQLite URL (``./data/addon.db``)."""
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


class DatabaseManager:
    """One async engine plus a session factory; init() before use, close() on shutdown."""

    def __init__(self, settings: ConnectSettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def initialized(self) -> bool:
        return self._sessions is not None

    def _require_engine(self) -> AsyncEngine:
        if self.engine is None:
            raise RuntimeError("Tenant database is not initialized; call init() first")
        return self.engine

    async def init(self) -> None:
        _prepare_sqlite_path(self._settings.db_url)
        self.engine = create_async_engine(self._settings.db_url)
        self._sessions = async_sessionmaker(self.engine, expire_on_commit=False)

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on exit and rolls back if the block raises."""
        self._require_engine()
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        async with self._require_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self._sessions = None
