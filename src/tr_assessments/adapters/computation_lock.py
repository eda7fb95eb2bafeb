"""In-process, per-assessment serialization of results computations.

Two near-simultaneous response events for the same assessment must not
interleave their read-compute-write sequences. Each key gets its own
asyncio.Lock, created on first use and discarded once no task holds or
waits for it, so the registry does not grow with the number of assessments.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ComputationLock:
    """Registry of per-key asyncio locks."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def active_keys(self) -> frozenset[str]:
        """Keys currently held or awaited."""
        return frozenset(self._locks)
