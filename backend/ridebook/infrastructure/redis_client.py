"""
Redis client factory for distributed trip locks.
Separated from business logic for clean architecture.

The client is owned by the application context and closed on shutdown;
there is no process-wide instance.
"""

import redis.asyncio as redis

from ridebook.core.config import Settings


def create_redis(settings: Settings) -> redis.Redis:
    """Build a pooled asyncio Redis client from settings."""
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )
