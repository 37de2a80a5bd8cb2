import logging

from sqlalchemy import NullPool
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from lms_service.config import get_settings
from lms_service.model import Base

logger = logging.getLogger(__name__)

settings = get_settings()


def create_engine_for(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build the async engine for a database URL.

    In-memory SQLite needs a single shared connection, everything else runs
    without a pool (connections are short-lived per request).
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(database_url, echo=echo, poolclass=NullPool)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine_for(settings.database_url, echo=settings.environment == "development")
AsyncSessionLocal = build_session_factory(engine)


async def init_db():
    async with engine.begin() as conn:
        if settings.environment in ("development", "test"):
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables ensured")


async def close_db():
    await engine.dispose()
