"""Engine and session lifecycle for the SQL item store.

One engine per process, created lazily from ``DATABASE_URL``. Sessions are
handed out by ``get_session()``, which owns the transaction: the store only
flushes.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from wbscalc.config import DBConfig, get_config
from wbscalc.db.models import Base

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _is_sqlite(url: str) -> bool:
    return url.lower().startswith("sqlite")


def engine_options(db_config: DBConfig) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine``; SQLite takes no pool sizing."""
    options: dict[str, Any] = {"echo": db_config.echo}
    if not _is_sqlite(db_config.url):
        options.update(
            pool_size=db_config.pool_size,
            max_overflow=db_config.pool_max_overflow,
            pool_timeout=db_config.pool_timeout,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return options


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on FK enforcement (and ON DELETE CASCADE) for every new SQLite connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_engine() -> AsyncEngine:
    """Get or create the process-wide engine.

    Raises:
        KeyError: If DATABASE_URL is not configured
    """
    global _engine

    if _engine is None:
        db_config = get_config().db
        _engine = create_async_engine(db_config.url, **engine_options(db_config))
        if _is_sqlite(db_config.url):
            enable_sqlite_foreign_keys(_engine)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)

    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work: commits on clean exit, rolls back on any error.

    Usage:
        async with get_session() as session:
            manager = VersionManager(SqlItemStore(session))
            await manager.clone_version(version_id, VersionMode.DETAIL)
    """
    session = get_session_factory()()

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db(drop: bool = False) -> None:
    """Create the projects/versions/items/dependencies tables.

    The schema is small and created directly from the ORM metadata; ``drop``
    wipes every version first.
    """
    async with get_engine().begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine; the next ``get_engine()`` re-reads the configuration."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
