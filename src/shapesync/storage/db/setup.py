"""Engine and session management for the shape store database.

The URL and echo flag come from :class:`~shapesync.core.config.ShapeSyncSettings`;
nothing here reads the environment.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from shapesync.core.config import ShapeSyncSettings

logger = structlog.get_logger(__name__)


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ANN001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def ensure_sqlite_directory(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database.

    Args:
        url: Database URL. Non-SQLite and in-memory URLs are ignored.
    """
    if not _is_sqlite(url):
        return
    database = make_url(url).database
    if not database or database == ":memory:":
        return
    Path(database).parent.mkdir(parents=True, exist_ok=True)


def create_database_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create the async engine for a database URL.

    SQLite connections get foreign keys switched on, since shape records
    cascade with their room.

    Args:
        url: Async database URL.
        echo: Log every SQL statement.

    Returns:
        Configured AsyncEngine.
    """
    sqlite = _is_sqlite(url)
    engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False} if sqlite else {},
    )
    if sqlite:
        event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    return engine


async def create_tables(engine: AsyncEngine) -> None:
    """Create the room and shape record tables if they are missing.

    Args:
        engine: The database engine.
    """
    from advanced_alchemy.base import BigIntAuditBase

    # Registers the tables on the shared metadata
    from shapesync.storage.db.models import RoomModel, ShapeRecordModel  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(BigIntAuditBase.metadata.create_all)


class DatabaseManager:
    """Owns the engine and hands out transactional sessions.

    Usage:
        db = DatabaseManager.from_settings(settings)
        await db.init()

        async with db.session() as session:
            ...

        await db.close()
    """

    def __init__(self, url: str, *, echo: bool = False) -> None:
        """Initialize the manager without connecting.

        Args:
            url: Async database URL.
            echo: Log every SQL statement.
        """
        self._url = url
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: ShapeSyncSettings) -> DatabaseManager:
        """Create a manager for the configured database.

        Args:
            settings: Settings carrying ``database_url`` and ``database_echo``.

        Returns:
            An uninitialized DatabaseManager.
        """
        return cls(settings.database_url, echo=settings.database_echo)

    @property
    def url(self) -> str:
        """The database URL this manager connects to."""
        return self._url

    async def init(self) -> None:
        """Create the engine and the tables."""
        ensure_sqlite_directory(self._url)
        self._engine = create_database_engine(self._url, echo=self._echo)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False, autoflush=False)
        await create_tables(self._engine)
        logger.debug("Database engine ready", backend=self._engine.url.get_backend_name())

    async def close(self) -> None:
        """Dispose of the engine, if any."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @property
    def engine(self) -> AsyncEngine:
        """The active engine.

        Raises:
            RuntimeError: If the manager has not been initialized.
        """
        if self._engine is None:
            msg = "Database not initialized. Call init() first."
            raise RuntimeError(msg)
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session that commits on success and rolls back on error.

        Yields:
            AsyncSession for database operations.

        Raises:
            RuntimeError: If the manager has not been initialized.
        """
        if self._session_factory is None:
            msg = "Database not initialized. Call init() first."
            raise RuntimeError(msg)

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
