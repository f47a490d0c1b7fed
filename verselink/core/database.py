"""Async SQLAlchemy engine, request sessions and the schema/health client."""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from verselink.core.config import settings
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the note, collection and reference tables."""

    pass


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.database_echo,
    # PgBouncer cannot share prepared statements between clients
    connect_args={"statement_cache_size": 0},
)

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; repositories commit their own writes."""
    async with async_session_maker() as session:
        yield session


class DatabaseClient:
    """Startup schema check and liveness probe over the shared engine."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    async def create_tables(self) -> None:
        """Create missing tables. Existing tables are left as they are."""
        from verselink.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)
        LOGGER.info("Database tables verified", extra={"tables": sorted(Base.metadata.tables)})

    async def health_check(self) -> dict:
        try:
            async with self.engine.connect() as conn:
                await conn.scalar(text("SELECT 1"))
        except Exception as e:
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy"}


db_client = DatabaseClient(engine)


async def init_database(create_tables: bool = True) -> None:
    """Check connectivity and, optionally, create missing tables."""
    LOGGER.info("Initializing database", extra={"create_tables": create_tables})
    if create_tables:
        await db_client.create_tables()
    else:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))


async def close_database() -> None:
    await engine.dispose()
    LOGGER.info("Database engine disposed")
