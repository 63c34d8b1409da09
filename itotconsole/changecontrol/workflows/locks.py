"""
Keyed Locks

Per-key asyncio locks, created on demand and dropped once no task
holds or awaits them.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.refs = 0


class KeyedLock:
    """
    Mutual exclusion per key

    Tasks using different keys never wait on each other. acquire() and
    release() may be called from different tasks as long as they pair up.
    """

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}

    async def acquire(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.refs += 1
        try:
            await entry.lock.acquire()
        except BaseException:
            # Cancelled while waiting; drop our reference without holding the lock
            self._unref(key, entry)
            raise

    def release(self, key: str) -> None:
        entry = self._entries.get(key)
        if entry is None or not entry.lock.locked():
            raise RuntimeError(f"Lock for {key!r} is not held")
        entry.lock.release()
        self._unref(key, entry)

    def _unref(self, key: str, entry: _Entry) -> None:
        entry.refs -= 1
        if entry.refs == 0 and self._entries.get(key) is entry:
            del self._entries[key]

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        await self.acquire(key)
        try:
            yield
        finally:
            self.release(key)

    def locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @property
    def active_keys(self) -> List[str]:
        """Keys with at least one holder or waiter"""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
