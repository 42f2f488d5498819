"""
Async database engine and session factory.

The engine is created lazily on first use, so importing the application
never opens a connection (and tests that override the session dependency
never need a PostgreSQL driver).
"""

import logging
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from algoedge.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.get_async_database_url(), echo=False, pool_pre_ping=True
        )
    return _engine


def get_sessionmaker() -> async_sessionmaker:
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _sessionmaker


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield one session per request. Repositories commit their own writes."""
    async with get_sessionmaker()() as session:
        yield session


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    """Create missing tables (and the partial unique index) on the engine."""
    # Registers the ORM tables on Base.metadata.
    from algoedge.infrastructure.mt5 import models  # noqa: F401

    target = engine or get_engine()
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def dispose_engine() -> None:
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None
