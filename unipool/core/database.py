"""
Database configuration and session management.
"""

from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from unipool.core.config import settings

def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> AsyncEngine:
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""
    if async_engine.dialect.name != "sqlite":
        return async_engine

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return async_engine

# Create async engine
engine = enable_sqlite_foreign_keys(create_async_engine(
    settings.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://"),
    echo=settings.DB_ECHO,
    pool_pre_ping=not settings.DATABASE_URL.startswith("sqlite"),
))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Create base class for models
Base = declarative_base()

def utcnow() -> datetime:
    """Timezone-aware current time, used as column default."""
    return datetime.now(timezone.utc)

# Dependency to get database session
async def get_db() -> AsyncSession:
    """Get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
