"""Redis connection management.

Provides:
- A shared connection pool
- Short-lived and long-lived client helpers
- Connectivity check for readiness probes
"""

from contentdesk.core.cache.redis import (
    close_redis_pool,
    get_client,
    ping,
    redis_client,
)


__all__ = [
    "close_redis_pool",
    "get_client",
    "ping",
    "redis_client",
]
