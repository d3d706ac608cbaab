"""Tests for the in-process keyed LockManager."""

import asyncio

import pytest

from game_queue.shared.lock import LockManager


class TestLockManager:
    async def test_same_key_serializes(self):
        locks = LockManager()
        order: list[str] = []

        async def worker(name: str):
            async with locks.lock("k"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]

    async def test_different_keys_do_not_block(self):
        locks = LockManager(lock_prefix="test")

        async def inner():
            async with locks.lock("k", 2):
                return set(locks._locks)

        async with locks.lock("k", 1):
            held = await asyncio.wait_for(inner(), timeout=0.1)

        assert held == {"test:k:1", "test:k:2"}

    async def test_idle_locks_are_dropped(self):
        locks = LockManager()

        async with locks.lock("host", "1"):
            pass
        async with locks.lock("host", "2"):
            pass

        assert locks._locks == {}

    async def test_released_on_error(self):
        locks = LockManager()

        with pytest.raises(RuntimeError):
            async with locks.lock("k"):
                raise RuntimeError("boom")

        assert locks._locks == {}
