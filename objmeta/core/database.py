"""
Database Connection Management

Async SQLAlchemy engine, session factory and unit-of-work helpers.

The AsyncSession is the unit of work. Repositories only flush; commit and
rollback belong to whoever opened the session:
- HTTP requests: the get_db dependency
- Background callers: get_db_context()
- Services: unit_of_work(), which joins a caller's session or opens its own
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from objmeta.config import get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the process-wide async engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory bound to the engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


def reset_db_state() -> None:
    """
    Forget the cached engine and session factory.

    Used by tests so a changed database URL is picked up. Does not dispose
    the old engine; call close_db() first when it was in use.
    """
    global _engine, _session_factory
    _engine = None
    _session_factory = None


async def init_db() -> None:
    """Verify the database is reachable."""
    from sqlalchemy import text

    engine = get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose the engine and its pooled connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session that owns its transaction.

    Commits when the block exits normally, rolls back and re-raises otherwise.

    Usage:
        async with get_db_context() as db:
            repo = PermissionRepository(db)
            await repo.grant(...)
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def unit_of_work(
    session: AsyncSession | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Join the caller's unit of work, or open and own a new one.

    A supplied session is yielded untouched: it is never committed or rolled
    back here, and failures propagate to its owner. Without one, a fresh
    session is opened through get_db_context().
    """
    if session is not None:
        yield session
        return

    async with get_db_context() as owned:
        yield owned


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency providing the request's unit of work.

    The request owns the transaction: it is committed after the endpoint
    returns and rolled back if the endpoint raises.
    """
    async with get_db_context() as session:
        yield session


# Type alias for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
