"""
Consumed-nonce bookkeeping for replay protection
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator


class NonceStore(ABC):
    """
    Records authorizations that have been settled successfully.

    ``lock(key)`` serializes settlement attempts for one key so that a consumed
    check followed by settle and ``mark_consumed`` happens atomically per key.
    Settlements for different keys never wait on each other.
    """

    @abstractmethod
    async def is_consumed(self, key: str) -> bool:
        pass

    @abstractmethod
    async def mark_consumed(self, key: str) -> None:
        pass

    @abstractmethod
    def lock(self, key: str) -> AsyncContextManager[None]:
        """Async context manager held for the duration of one settlement"""
        pass


class InMemoryNonceStore(NonceStore):
    """Process-local store; consumed keys are lost on restart"""

    def __init__(self) -> None:
        self._consumed: set[str] = set()
        # key -> (lock, number of holders and waiters)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    async def is_consumed(self, key: str) -> bool:
        return key in self._consumed

    async def mark_consumed(self, key: str) -> None:
        self._consumed.add(key)

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    def __len__(self) -> int:
        return len(self._consumed)

    @property
    def active_locks(self) -> int:
        return len(self._locks)
