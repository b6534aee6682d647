"""Database engines for the migration environments and the refresh daemon.

Migrations run through Alembic's own connection; this module builds the
engines everything else uses and normalizes connection URLs to the async
asyncpg driver.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import create_async_engine

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_SYNC_PREFIXES = ("postgresql://", "postgres://")


def normalize_async_database_url(database_url: str) -> str:
    """Rewrite a sync PostgreSQL URL to use the asyncpg driver."""
    for prefix in _SYNC_PREFIXES:
        if database_url.startswith(prefix):
            logger.debug("Database URL uses sync dialect %r; using 'postgresql+asyncpg://'.", prefix)
            return "postgresql+asyncpg://" + database_url[len(prefix) :]
    return database_url


def create_async_db_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create an asynchronous SQLAlchemy engine.

    Args:
        database_url: Database connection URL (e.g., postgresql+asyncpg://...).
        **kwargs: Additional engine options.

    Returns:
        SQLAlchemy AsyncEngine instance.
    """
    return create_async_engine(normalize_async_database_url(database_url), **kwargs)


def create_refresh_engine(database_url: str, *, pool_size: int = 5, echo: bool = False) -> AsyncEngine:
    """Create the engine used for refreshes.

    Connections are in AUTOCOMMIT mode so each refresh commits on its own
    and no transaction snapshot is held open between refreshes.

    Args:
        database_url: Database connection URL.
        pool_size: Connection pool size.
        echo: Echo SQL statements for debugging.

    Returns:
        SQLAlchemy AsyncEngine instance.
    """
    return create_async_db_engine(
        database_url,
        isolation_level="AUTOCOMMIT",
        pool_size=pool_size,
        pool_pre_ping=True,
        echo=echo,
    )

