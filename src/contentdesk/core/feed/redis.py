"""Change feed over Redis pub/sub.

Every process publishes to one channel and runs a single listener task
that fans events out to its local subscribers, so sessions served by
different workers see each other's writes.
"""

import asyncio
import contextlib
from typing import Any

import structlog
from pydantic import ValidationError

from contentdesk.core.cache.redis import get_client, redis_client
from contentdesk.core.feed.base import (
    BaseChangeFeed,
    ChangeEvent,
    ChangeHandler,
    Unsubscribe,
)


logger = structlog.get_logger()


class RedisChangeFeed(BaseChangeFeed):
    """Change feed backed by a Redis pub/sub channel.

    A dropped pub/sub connection is reopened with exponential backoff for
    as long as the process has subscribers.

    Attributes:
        channel: Pub/sub channel name shared by every process
        retry_delay: Seconds before the first reconnect attempt
        max_retry_delay: Upper bound for the reconnect backoff
    """

    def __init__(
        self,
        channel: str,
        retry_delay: float = 1.0,
        max_retry_delay: float = 30.0,
    ) -> None:
        super().__init__()
        self.channel = channel
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        self._client: Any = None
        self._pubsub: Any = None
        self._listener: asyncio.Task[None] | None = None

    @property
    def is_listening(self) -> bool:
        return self._listener is not None and not self._listener.done()

    async def publish(self, event: ChangeEvent) -> None:
        async with redis_client() as client:
            await client.publish(self.channel, event.model_dump_json())

    async def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        unsubscribe = self._register(handler)
        try:
            await self._ensure_listening()
        except Exception:
            unsubscribe()
            raise
        return unsubscribe

    async def _ensure_listening(self) -> None:
        if self.is_listening:
            return

        if self._pubsub is None:
            await self._connect()
        self._listener = asyncio.create_task(self._listen())
        self._listener.add_done_callback(self._listener_done)
        logger.info("change_feed_listening", channel=self.channel)

    async def _connect(self) -> None:
        if self._client is None:
            self._client = get_client()
        pubsub = self._client.pubsub()
        await pubsub.subscribe(self.channel)
        self._pubsub = pubsub

    async def _disconnect(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.aclose()
        except Exception as e:
            logger.debug("change_feed_pubsub_close_failed", channel=self.channel, error=str(e))

    def _listener_done(self, task: asyncio.Task[None]) -> None:
        if task is self._listener:
            self._listener = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "change_feed_listener_crashed",
                channel=self.channel,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _listen(self) -> None:
        delay = self.retry_delay
        while True:
            try:
                if self._pubsub is None:
                    await self._connect()
                    logger.info("change_feed_reconnected", channel=self.channel)
                async for message in self._pubsub.listen():
                    delay = self.retry_delay
                    await self._handle(message)
            except Exception as e:
                logger.warning(
                    "change_feed_connection_lost",
                    channel=self.channel,
                    error=str(e),
                    error_type=type(e).__name__,
                    retry_in=delay,
                )
            else:
                logger.warning("change_feed_stream_ended", channel=self.channel, retry_in=delay)

            await self._disconnect()
            if not self._handlers:
                logger.info("change_feed_idle", channel=self.channel)
                return
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_retry_delay)

    async def _handle(self, message: dict[str, Any]) -> None:
        if message.get("type") != "message":
            return

        try:
            event = ChangeEvent.model_validate_json(message["data"])
        except ValidationError as e:
            logger.warning(
                "change_feed_bad_message",
                channel=self.channel,
                error=str(e),
            )
            return

        await self._dispatch(event)

    async def close(self) -> None:
        self._handlers.clear()

        if self._listener is not None:
            self._listener.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener
            self._listener = None

        if self._pubsub is not None:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
            self._pubsub = None

        if self._client is not None:
            await self._client.aclose()
            self._client = None

        logger.info("change_feed_closed", channel=self.channel)
