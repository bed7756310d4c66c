"""
Keyed lock table.

WHAT: Per-key asyncio locks (order ids, seller identities)
WHY: Bound same-key concurrency inside one process without module globals
HOW: Lazily created asyncio.Lock per key, dropped when no task uses it any more
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator
import asyncio


class KeyedLockTable:
    """
    Map of key -> asyncio.Lock owned by the service context.

    Only protects tasks of this process; replicas do not share it.
    """

    def __init__(self, name: str = "locks"):
        self.name = name
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        remaining = self._users.get(key, 1) - 1
        if remaining <= 0:
            self._users.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._users[key] = remaining

    def is_held(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Wait for the key's lock and hold it for the block."""
        lock = self._checkout(key)
        try:
            async with lock:
                yield
        finally:
            self._checkin(key)

    @asynccontextmanager
    async def try_hold(self, key: str) -> AsyncIterator[bool]:
        """
        Take the key's lock only if nobody holds it.

        Yields True when acquired (released on exit), False when already held.
        Check and acquire happen without an intervening suspension point, so
        two tasks of the same loop can never both get True.
        """
        if self.is_held(key):
            yield False
            return

        lock = self._checkout(key)
        try:
            await lock.acquire()  # uncontended: completes without suspending
            try:
                yield True
            finally:
                lock.release()
        finally:
            self._checkin(key)
