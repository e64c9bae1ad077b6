"""
In-process trip lock: one asyncio.Lock per trip id.
Correct only while every booking for a trip goes through the same process.
"""

import asyncio
import time
from contextlib import asynccontextmanager

from ridebook.core.exceptions import StoreFailure
from ridebook.core.metrics import lock_timeouts, lock_wait
from ridebook.services.interfaces.trip_lock import TripLock


class LocalTripLock(TripLock):
    """
    Use when:
    - A single worker process serves all bookings
    - Tests and local development
    """

    backend = "local"

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout
        self._locks: dict[int, asyncio.Lock] = {}
        self._holders: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, trip_id: int):
        lock = self._locks.setdefault(trip_id, asyncio.Lock())
        self._holders[trip_id] = self._holders.get(trip_id, 0) + 1
        try:
            start = time.perf_counter()
            try:
                async with asyncio.timeout(self._timeout):
                    await lock.acquire()
            except TimeoutError as e:
                lock_timeouts.labels(backend=self.backend).inc()
                raise StoreFailure(
                    f"Timed out after {self._timeout}s waiting for trip {trip_id}",
                    trip_id=trip_id,
                ) from e
            lock_wait.labels(backend=self.backend).observe(time.perf_counter() - start)
            try:
                yield
            finally:
                lock.release()
        finally:
            # Drop the lock once nobody holds or waits on it
            self._holders[trip_id] -= 1
            if self._holders[trip_id] == 0:
                del self._holders[trip_id]
                self._locks.pop(trip_id, None)

    def is_locked(self, trip_id: int) -> bool:
        lock = self._locks.get(trip_id)
        return lock is not None and lock.locked()
