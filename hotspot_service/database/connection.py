from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hotspot_service.database.models import Base
from hotspot_service.utils.logger import get_logger
from hotspot_service.utils.settings.database import DatabaseSettings

logger = get_logger(__name__)


def create_engine_and_sessionmaker(
    settings: DatabaseSettings | None = None,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    settings = settings or DatabaseSettings()
    engine = create_async_engine(settings.DATABASE_URL_ASYNC, echo=settings.DATABASE_ECHO)
    session_factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False
    )
    return engine, session_factory


async def create_tables(engine: AsyncEngine) -> None:
    """Create missing tables; schema migrations are out of scope."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
