"""
Draft answer buffer for in-progress attempts.

Drafts live in a Redis hash (with TTL) when Redis is configured and in a
per-process dict otherwise. Drafts are never written to the relational store;
submission turns them into QuizAnswer rows.
"""

import logging
from typing import Dict, Any

from lms_service.clients.redis_client import RedisClient

logger = logging.getLogger(__name__)


class AnswerBuffer:

    def __init__(self, redis_client: RedisClient):
        self._redis_client = redis_client
        self._local: Dict[int, Dict[int, Dict[str, Any]]] = {}

    async def save(self, attempt_id: int, question_id: int, answer: Dict[str, Any]):
        if self._redis_client.is_available():
            await self._redis_client.set_draft(attempt_id, question_id, answer)
            return
        self._local.setdefault(attempt_id, {})[question_id] = dict(answer)

    async def get_all(self, attempt_id: int) -> Dict[int, Dict[str, Any]]:
        if self._redis_client.is_available():
            return await self._redis_client.get_drafts(attempt_id)
        return dict(self._local.get(attempt_id, {}))

    async def clear(self, attempt_id: int):
        if self._redis_client.is_available():
            await self._redis_client.delete_drafts(attempt_id)
            return
        self._local.pop(attempt_id, None)
