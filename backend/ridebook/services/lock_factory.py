"""
Trip lock factory.
Configures which per-trip locking strategy to use.
"""

from typing import Optional

import redis.asyncio as redis

from ridebook.core.config import Settings
from ridebook.infrastructure.redis_client import create_redis
from ridebook.services.interfaces.local_trip_lock import LocalTripLock
from ridebook.services.interfaces.trip_lock import TripLock
from ridebook.services.redis_trip_lock import RedisTripLock


def get_trip_lock(settings: Settings, redis_client: Optional[redis.Redis] = None) -> TripLock:
    """
    Build the configured trip lock.

    Strategy selection via LOCK_BACKEND:
    - local: LocalTripLock (single process)
    - redis: RedisTripLock (shared across processes)
    """
    backend = settings.LOCK_BACKEND.lower()

    if backend == "redis":
        return RedisTripLock(
            redis_client if redis_client is not None else create_redis(settings),
            timeout=settings.TRIP_LOCK_TIMEOUT,
            ttl=settings.TRIP_LOCK_TTL,
        )
    if backend == "local":
        return LocalTripLock(timeout=settings.TRIP_LOCK_TIMEOUT)
    raise ValueError(f"Unknown LOCK_BACKEND: {settings.LOCK_BACKEND!r}")
