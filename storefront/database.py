"""
Database Connection Module
Builds the SQLAlchemy async engine and session factory used by the
SQL document store.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storefront.core.config import get_settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the async engine.

    Pool sizing only applies to server databases; SQLite uses its own pool.
    """
    settings = get_settings()
    url = database_url or settings.database_url

    options = {"echo": settings.sql_echo}
    if not url.startswith("sqlite"):
        options.update(pool_size=5, max_overflow=10)

    return create_async_engine(url, **options)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory - objects remain accessible after commit."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables in database.
    Called once when the SQL store starts.
    """
    # Register the tables on Base.metadata
    from storefront import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")
