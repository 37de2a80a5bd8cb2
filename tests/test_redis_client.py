import asyncio

import pytest
from redis.exceptions import LockError


class TestLocalAttemptLock:
    """Attempt locks when Redis is not configured"""

    async def test_held_lock_rejects_second_holder(self, redis_client):
        async with redis_client.acquire_attempt_lock(7):
            with pytest.raises(LockError):
                async with redis_client.acquire_attempt_lock(7):
                    pass

    async def test_locks_are_per_attempt(self, redis_client):
        async with redis_client.acquire_attempt_lock(7):
            async with redis_client.acquire_attempt_lock(8) as acquired:
                assert acquired is True

    async def test_lock_is_released_after_error(self, redis_client):
        with pytest.raises(RuntimeError):
            async with redis_client.acquire_attempt_lock(7):
                raise RuntimeError("boom")

        async with redis_client.acquire_attempt_lock(7) as acquired:
            assert acquired is True

    async def test_concurrent_tasks_only_one_wins(self, redis_client):
        entered = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with redis_client.acquire_attempt_lock(7):
                entered.set()
                await release.wait()

        task = asyncio.create_task(holder())
        await entered.wait()

        with pytest.raises(LockError):
            async with redis_client.acquire_attempt_lock(7):
                pass

        release.set()
        await task
        async with redis_client.acquire_attempt_lock(7) as acquired:
            assert acquired is True
