"""
Database session management.

Provides the process-wide async engine and session factory, plus the
``get_db`` dependency used by the API layer.  The engine is created at
import and disposed by the application lifespan.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from investor_intake.core.config import settings


def enable_sqlite_foreign_keys(sync_engine: Engine) -> None:
    """
    SQLite ignores foreign keys (and so ``ON DELETE CASCADE``) unless the
    pragma is set on every new connection.  aiosqlite drives a sync
    connection underneath, so the listener goes on the sync engine.
    """

    @event.listens_for(sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def postgres_connect_args(url: str) -> dict:
    """
    Pin the session time zone to UTC so ``CURRENT_DATE`` in the age CHECK
    agrees with the validator's UTC ``today``.  Only asyncpg takes
    ``server_settings``; other drivers keep their defaults.
    """
    if "+asyncpg" in url:
        return {"server_settings": {"timezone": "UTC"}}
    return {}


def build_engine(url: str) -> AsyncEngine:
    """Create an async engine for ``url`` (SQLite or PostgreSQL)."""
    if url.startswith("sqlite"):
        # StaticPool shares one connection, so an in-memory database
        # survives across sessions.
        from sqlalchemy.pool import StaticPool

        sqlite_engine = create_async_engine(
            url,
            echo=settings.DEBUG,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        enable_sqlite_foreign_keys(sqlite_engine.sync_engine)
        return sqlite_engine

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        connect_args=postgres_connect_args(url),
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: attribute access after commit must not trigger
    # a lazy load, which async sessions cannot perform implicitly.
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.

    The session is closed when the request finishes, returning its
    connection to the pool.
    """
    async with AsyncSessionLocal() as session:
        yield session
