"""Shared utilities for job infrastructure."""

from arq.connections import RedisSettings

from contentdesk.config import settings


def get_redis_settings() -> RedisSettings:
    """ARQ Redis settings for both the worker and the enqueueing pool."""
    return RedisSettings.from_dsn(str(settings.redis_url))
