"""
Database session management.

WHY: Async database sessions are required for FastAPI's async/await pattern.
The engine and session factory are built once by create_app() from the
process Settings and kept on app.state; get_db() hands one session to each
request and owns its commit/rollback.
"""

from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tasksetu.core.config import Settings


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy, not the sqlite3 driver, emit BEGIN.

    WHY: The driver defers BEGIN until the first write, which breaks the
    SAVEPOINTs used by batch invitations and audit writes.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    WHY: pool_pre_ping recycles stale connections. SQLite (tests, local
    runs) uses a static pool and rejects pool sizing arguments.

    Args:
        settings: Application settings

    Returns:
        AsyncEngine bound to settings.async_database_url
    """
    if settings.is_sqlite:
        engine = create_async_engine(settings.async_database_url, echo=settings.DEBUG)
        enable_sqlite_savepoints(engine)
        return engine

    return create_async_engine(
        settings.async_database_url,
        echo=settings.DEBUG,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create the session factory for an engine.

    WHY: expire_on_commit=False prevents lazy-loading issues after commit.
    autoflush=False gives explicit control over when SQL is emitted.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    WHY: Each request gets its own session from the application's factory.
    The try/except/finally commits on success and rolls back on any error,
    so a failed request never leaves half-applied membership changes.

    Yields:
        AsyncSession: Database session for the request
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
