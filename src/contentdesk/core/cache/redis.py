"""Redis client configuration and connection management.

Provides async Redis clients with connection pooling for the
cross-process change feed.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from contentdesk.config import settings


# Connection pool for efficient connection reuse
_pool: ConnectionPool | None = None


def _get_pool() -> ConnectionPool:
    """Get or create the Redis connection pool."""
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(
            str(settings.redis_url),
            max_connections=50,
            decode_responses=True,
        )
    return _pool


def get_client() -> redis.Redis:  # type: ignore[type-arg]
    """Get a long-lived Redis client bound to the shared pool.

    The caller owns the client and must ``aclose()`` it.
    """
    return redis.Redis(connection_pool=_get_pool())


@asynccontextmanager
async def redis_client() -> AsyncGenerator[redis.Redis, None]:  # type: ignore[type-arg]
    """Context manager for a short-lived Redis client.

    Usage:
        async with redis_client() as client:
            await client.publish("channel", "payload")
    """
    client = get_client()
    try:
        yield client
    finally:
        await client.aclose()


async def ping() -> bool:
    """Check Redis connectivity."""
    async with redis_client() as client:
        return bool(await client.ping())


async def close_redis_pool() -> None:
    """Close the Redis connection pool.

    Call this during application shutdown.
    """
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
