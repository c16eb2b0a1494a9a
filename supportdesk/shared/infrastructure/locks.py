"""
Keyed Locks
===========

Per-entity mutual exclusion for asyncio code.

Tickets and agents are serialised by id: operations on different ids run
in parallel, operations on the same id queue behind each other. Locks are
created on demand and discarded once nobody holds or waits for them.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class KeyedLock:
    """
    A family of asyncio locks addressed by key.

    ``asyncio.Lock`` is not reentrant; a task must never acquire a key it
    already holds. Multiple keys are always acquired in sorted order so two
    tasks locking overlapping key sets cannot deadlock.
    """

    def __init__(self, name: str = "entity"):
        self.name = name
        self._entries: Dict[str, _Entry] = {}

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for a single key."""
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)

    @asynccontextmanager
    async def acquire_many(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Hold the locks for several keys, acquired in sorted order."""
        ordered = sorted({key for key in keys if key is not None})
        async with self._acquire_ordered(ordered):
            yield

    @asynccontextmanager
    async def _acquire_ordered(self, keys: list) -> AsyncIterator[None]:
        if not keys:
            yield
            return
        async with self.acquire(keys[0]):
            async with self._acquire_ordered(keys[1:]):
                yield

    def is_locked(self, key: str) -> bool:
        """True while some task holds ``key``."""
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)
