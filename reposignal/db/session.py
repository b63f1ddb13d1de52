"""Async engine, session factory and the request-scoped `get_db` dependency.

Setup requests each run in their own session and never share an identity
map, so installation state read by one request is never served to the next.
The orchestrator commits explicitly; `get_db` commits whatever is left on
success and rolls back on error.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from reposignal.core.config import Settings, get_settings


def _pool_options(database_url: str) -> dict[str, Any]:
    """Connection pool sizing for Postgres; SQLite picks its own pool."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 5,
        "pool_timeout": 15,
    }


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        **_pool_options(settings.database_url),
    )


engine = build_engine(get_settings())

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
