"""
Per-trip mutual exclusion strategy interface.
Allows swapping between in-process and distributed locking.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class TripLock(ABC):
    """
    Interface for per-trip critical sections.

    Implementations:
    - LocalTripLock: one asyncio.Lock per trip, single process
    - RedisTripLock: one Redis lock per trip, shared by every process

    Acquisition is bounded; a caller that cannot get the lock in time gets
    StoreFailure rather than waiting forever.
    """

    backend = "abstract"

    @abstractmethod
    def hold(self, trip_id: int) -> AsyncContextManager[None]:
        """
        Async context manager holding the lock for `trip_id`.

        Usage:
            async with trip_lock.hold(trip.id):
                ...read, check, write...
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the strategy."""
        pass
