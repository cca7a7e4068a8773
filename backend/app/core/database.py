"""Async database engine and session management.

Configures the SQLAlchemy async engine (SQLite via aiosqlite by default)
and provides dependency injection for database sessions.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.models import Base

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_schema(bind: AsyncEngine = engine) -> None:
    """Create all tables that do not exist yet.

    Called once at application startup.
    """
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
