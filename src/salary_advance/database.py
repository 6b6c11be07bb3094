"""Database connection and session management."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from salary_advance.config import get_settings
from salary_advance.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


def is_memory_database(database_url: str) -> bool:
    """True for SQLite URLs that point at an in-memory database."""
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Create async database engine.

    In-memory SQLite shares one connection so the schema outlives a
    session. Every other database, file-backed SQLite included, pools
    connections so each session runs its own transaction.
    """
    url = database_url or get_settings().database_url
    kwargs: dict[str, Any] = {"echo": False}
    if is_memory_database(url):
        kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
    elif make_url(url).get_backend_name() != "sqlite":
        kwargs.update(pool_pre_ping=True, pool_size=10, max_overflow=20)
    return create_async_engine(url, **kwargs)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with the engine-wide session options."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Initialize database engine and session factory."""
    global _engine, _session_factory
    if _engine is None or _session_factory is None:
        engine = get_engine()
        factory = make_session_factory(engine)
        _engine, _session_factory = engine, factory
        return engine, factory
    return _engine, _session_factory


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Dispose the global engine (application shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None

