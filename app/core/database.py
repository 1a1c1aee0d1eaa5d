"""Async SQLAlchemy 2.0 database setup."""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    pass


@lru_cache
def get_engine() -> AsyncEngine:
    """Create the async engine from settings (one per process)."""
    settings = get_settings()
    engine: AsyncEngine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )
    return engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Create async session maker bound to the process engine."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables known to the declarative base.

    Args:
        engine: Engine to create the schema on.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions.

    The session is scoped to a single request and always closed,
    including when the handler raises mid-way through an upload.

    Yields:
        AsyncSession: Database session that auto-commits on success.
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
