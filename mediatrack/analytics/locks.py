"""
Per-key mutual exclusion for coroutines.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Hashable


class KeyedLock:
    """
    One ``asyncio.Lock`` per key, created on demand and dropped once no task
    holds or waits for it.

    Example:
        locks = KeyedLock()
        async with locks.hold(user_id):
            ...
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncGenerator[None, None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
