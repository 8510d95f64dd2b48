import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import Settings, get_settings
from .models import Base

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.database_url,
        echo=settings.echo_sql,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


engine = build_engine(get_settings())

# Every repository call opens its own short unit of work from this factory.
async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def create_schema(target: AsyncEngine = engine) -> None:
    """Create missing tables; existing tables are left untouched."""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database schema ensured (%d tables)", len(Base.metadata.tables))


async def dispose_engine(target: AsyncEngine = engine) -> None:
    await target.dispose()
