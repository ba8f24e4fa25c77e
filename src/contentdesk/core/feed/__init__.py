"""Record change feeds.

Provides:
- The change feed contract (publish / subscribe / close)
- An in-process backend
- A Redis pub/sub backend for multi-process deployments
"""

from contentdesk.config import settings
from contentdesk.core.feed.base import (
    ChangeAction,
    ChangeEvent,
    ChangeFeed,
    ChangeHandler,
    Unsubscribe,
)
from contentdesk.core.feed.local import LocalChangeFeed
from contentdesk.core.feed.redis import RedisChangeFeed


def create_change_feed() -> ChangeFeed:
    """Build the change feed selected by ``CHANGE_FEED_BACKEND``."""
    if settings.change_feed_backend == "redis":
        return RedisChangeFeed(settings.change_feed_channel)
    return LocalChangeFeed()


__all__ = [
    "ChangeAction",
    "ChangeEvent",
    "ChangeFeed",
    "ChangeHandler",
    "LocalChangeFeed",
    "RedisChangeFeed",
    "Unsubscribe",
    "create_change_feed",
]
