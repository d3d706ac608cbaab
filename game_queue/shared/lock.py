import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger


class _KeyedLock:
    __slots__ = ("lock", "waiters")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.waiters = 0


class LockManager:
    """In-process keyed lock manager (asyncio).

    Each key (built from ``*key_parts``) maps to its own ``asyncio.Lock`` so that
    critical sections on different keys never block each other.

    Lock objects are dropped once nobody holds or waits on them, so the table does
    not grow with the number of keys ever seen.
    """

    def __init__(self, lock_prefix: str = "lock"):
        """
        Args:
            lock_prefix: Prefix for lock keys, e.g. 'lock'
        """
        self.lock_prefix = lock_prefix
        self._locks: dict[str, _KeyedLock] = {}

    def _make_lock_key(self, *parts) -> str:
        return f"{self.lock_prefix}:{':'.join(str(part) for part in parts)}"

    @asynccontextmanager
    async def lock(self, *key_parts) -> AsyncIterator[None]:
        """
        Hold the lock for ``key_parts`` for the duration of the ``async with`` block.

        Args:
            *key_parts: Parts for composing the lock key
        """
        lock_key = self._make_lock_key(*key_parts)
        entry = self._locks.get(lock_key)
        if entry is None:
            entry = self._locks[lock_key] = _KeyedLock()

        entry.waiters += 1
        try:
            await entry.lock.acquire()
        except BaseException:
            self._release_waiter(lock_key, entry)
            raise

        logger.debug("Acquired lock: key={}", lock_key)
        try:
            yield
        finally:
            entry.lock.release()
            self._release_waiter(lock_key, entry)
            logger.debug("Released lock: key={}", lock_key)

    def _release_waiter(self, lock_key: str, entry: _KeyedLock) -> None:
        entry.waiters -= 1
        if entry.waiters == 0 and not entry.lock.locked() and self._locks.get(lock_key) is entry:
            del self._locks[lock_key]
