import logging
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_service.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)


async def get_database() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that injects a database session into endpoints.
    Uncommitted work is rolled back when the request fails on a database error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"Rolling back session after database error: {e}")
            await session.rollback()
            raise
