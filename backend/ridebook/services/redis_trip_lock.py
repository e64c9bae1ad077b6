"""
Distributed trip lock backed by Redis.
Implements TripLock using redis-py's asyncio Lock (SET NX PX + token check).

Failure policy:
  Unlike a cache, this lock guards seat accounting, so Redis being down
  must not "fail open". Connection errors and acquisition timeouts surface
  as StoreFailure and the booking is not attempted.

  The lock carries a TTL so a crashed worker cannot block a trip forever.
  If the critical section outlives the TTL, release fails and that is
  surfaced as StoreFailure, since another worker may have entered meanwhile.
  An error already raised inside the section is kept and the failed release
  is only logged.
"""

import time
from contextlib import asynccontextmanager

import redis.asyncio as redis
from redis.exceptions import LockError, RedisError

from ridebook.core.exceptions import StoreFailure
from ridebook.core.logging import get_logger
from ridebook.core.metrics import lock_timeouts, lock_wait
from ridebook.services.interfaces.trip_lock import TripLock

logger = get_logger(__name__)


class RedisTripLock(TripLock):
    """
    Use when:
    - Several worker processes book against the same trips
    """

    backend = "redis"

    def __init__(
        self,
        client: redis.Redis,
        timeout: float = 10.0,
        ttl: float = 30.0,
        prefix: str = "trip-lock",
    ):
        self.redis = client
        self._timeout = timeout
        self._ttl = ttl
        self._prefix = prefix

    def key(self, trip_id: int) -> str:
        return f"{self._prefix}:{trip_id}"

    @asynccontextmanager
    async def hold(self, trip_id: int):
        lock = self.redis.lock(self.key(trip_id), timeout=self._ttl, blocking_timeout=self._timeout)

        start = time.perf_counter()
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logger.error("trip_lock_unavailable", trip_id=trip_id, error=str(e))
            raise StoreFailure(f"Could not reach lock server for trip {trip_id}", trip_id=trip_id) from e

        if not acquired:
            lock_timeouts.labels(backend=self.backend).inc()
            raise StoreFailure(
                f"Timed out after {self._timeout}s waiting for trip {trip_id}",
                trip_id=trip_id,
            )
        lock_wait.labels(backend=self.backend).observe(time.perf_counter() - start)

        try:
            yield
        except BaseException:
            # The body's own error wins over a failed release
            try:
                await lock.release()
            except (LockError, RedisError) as e:
                logger.error("trip_lock_expired", trip_id=trip_id, ttl=self._ttl, error=str(e))
            raise

        try:
            await lock.release()
        except (LockError, RedisError) as e:
            logger.error("trip_lock_expired", trip_id=trip_id, ttl=self._ttl, error=str(e))
            raise StoreFailure(f"Lock for trip {trip_id} expired before release", trip_id=trip_id) from e

    async def close(self) -> None:
        await self.redis.aclose()
