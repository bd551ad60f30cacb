"""
Database Connection Module
Builds the SQLAlchemy async engine used by the SQL data store.

The engine is created once at startup and handed to SqlDataStore;
nothing in the application reaches for a module-level engine.
"""

import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite URLs (used by tests) do not accept pool sizing arguments.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,  # Connection pool size
        max_overflow=10,  # Extra connections when pool is full
        pool_pre_ping=True,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Register models on Base.metadata
    import dinein.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")
