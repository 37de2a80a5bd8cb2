"""
Redis client for attempt submission locking and draft answer buffering.

Features:
    - Distributed lock by attempt_id so one submission finalizes an attempt
    - Draft answers kept in a hash per attempt with TTL (Time To Live)
    - Without Redis: per-process asyncio locks; drafts fall back to AnswerBuffer's dict
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional, Dict, Any

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import LockError, RedisError

from lms_service.config import Settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client for locking and draft answer storage"""

    # TTL settings
    LOCK_TTL = 30  # submission never takes longer than this

    def __init__(self, settings: Settings):
        self._redis_url = settings.redis_url
        self._draft_ttl = settings.answer_buffer_ttl_seconds
        self._client: Optional[Redis] = None
        self._local_locks: Dict[int, asyncio.Lock] = {}

    async def connect(self):
        """Establish Redis connection"""
        if not self._redis_url:
            logger.warning("Redis URL not configured, Redis features disabled")
            return

        try:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            await self._client.ping()
            logger.info("Redis connection established successfully")
        except (RedisError, OSError) as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._client = None

    async def disconnect(self):
        """Close Redis connection"""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    def is_available(self) -> bool:
        """Check if Redis is available"""
        return self._client is not None

    # =============================
    #   Distributed Lock
    # =============================
    def _lock_key(self, attempt_id: int) -> str:
        return f"attempt:lock:{attempt_id}"

    @asynccontextmanager
    async def acquire_attempt_lock(self, attempt_id: int, timeout: int = LOCK_TTL):
        """
        Acquire the submission lock of an attempt.

        Args:
            attempt_id: ID of the quiz attempt
            timeout: Lock timeout in seconds

        Yields:
            True once the lock is held. Without Redis the lock is a
            per-process asyncio.Lock, which only guards this worker.

        Raises:
            LockError: If another submission holds the lock
        """
        if not self.is_available():
            async with self._local_attempt_lock(attempt_id):
                yield True
            return

        lock = self._client.lock(
            self._lock_key(attempt_id),
            timeout=timeout,
            blocking=False
        )

        acquired = await lock.acquire(blocking=False)
        if not acquired:
            raise LockError(f"Attempt {attempt_id} is already being submitted")

        logger.debug(f"Acquired submission lock for attempt {attempt_id}")
        try:
            yield True
        finally:
            try:
                await lock.release()
                logger.debug(f"Released submission lock for attempt {attempt_id}")
            except LockError:
                # expired while held
                logger.warning(f"Submission lock for attempt {attempt_id} expired before release")

    @asynccontextmanager
    async def _local_attempt_lock(self, attempt_id: int):
        lock = self._local_locks.setdefault(attempt_id, asyncio.Lock())
        if lock.locked():
            raise LockError(f"Attempt {attempt_id} is already being submitted")

        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
            self._local_locks.pop(attempt_id, None)

    # =============================
    #   Draft Answers
    # =============================
    def _draft_key(self, attempt_id: int) -> str:
        return f"attempt:drafts:{attempt_id}"

    async def set_draft(self, attempt_id: int, question_id: int, answer: Dict[str, Any]):
        """
        Store the draft answer of one question and refresh the hash TTL.
        """
        key = self._draft_key(attempt_id)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hset(key, str(question_id), json.dumps(answer))
            pipe.expire(key, self._draft_ttl)
            await pipe.execute()
        logger.debug(f"Buffered draft for attempt {attempt_id}, question {question_id}")

    async def get_drafts(self, attempt_id: int) -> Dict[int, Dict[str, Any]]:
        data = await self._client.hgetall(self._draft_key(attempt_id))
        return {int(question_id): json.loads(raw) for question_id, raw in data.items()}

    async def delete_drafts(self, attempt_id: int):
        await self._client.delete(self._draft_key(attempt_id))
        logger.debug(f"Deleted drafts for attempt {attempt_id}")

    async def ping(self) -> bool:
        """Ping Redis server to check connectivity"""
        if self.is_available():
            return await self._client.ping()
        return False
