"""
In-process keyed locks.

Serializes coroutines that write the same logical record (e.g. one
discrepancy identity) while letting different keys proceed concurrently.
Cross-process safety comes from the optimistic version columns on the models.
"""
import asyncio
from collections.abc import Hashable
from contextlib import asynccontextmanager


class KeyedLock:

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]


# Shared by DiscrepancyDetector and ResolutionWorkflow: (project_id, contractor_id, work_date)
discrepancy_locks = KeyedLock()
