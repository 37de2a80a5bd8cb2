"""
Background task that finalizes quiz attempts whose time ran out.

Features:
    - Periodic sweep on the application's event loop
    - Fresh database session per sweep
    - Errors are logged and the loop keeps running
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from lms_service.clients.redis_client import RedisClient
from lms_service.dependencies.services import build_quiz_attempt_service
from lms_service.services.answer_buffer import AnswerBuffer

logger = logging.getLogger(__name__)


class AttemptExpirySweeper:
    """Periodically runs QuizAttemptService.finalize_expired_attempts."""

    def __init__(
            self,
            session_factory,
            redis_client: RedisClient,
            answer_buffer: AnswerBuffer,
            interval_seconds: int = 60,
    ):
        self._session_factory = session_factory
        self._redis_client = redis_client
        self._answer_buffer = answer_buffer
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def sweep_once(self) -> int:
        async with self._session_factory() as session:
            service = build_quiz_attempt_service(session, self._redis_client, self._answer_buffer)
            return await service.finalize_expired_attempts()

    async def _run(self):
        logger.info(f"Attempt expiry sweeper started (every {self._interval}s)")
        while True:
            try:
                await self.sweep_once()
            except SQLAlchemyError as e:
                logger.error(f"Database error in attempt expiry sweep: {e}")
            except Exception as e:
                logger.exception(f"Unexpected error in attempt expiry sweep: {e}")
            await asyncio.sleep(self._interval)

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Attempt expiry sweeper stopped")
