"""In-process change feed."""

from contentdesk.core.feed.base import (
    BaseChangeFeed,
    ChangeEvent,
    ChangeHandler,
    Unsubscribe,
)


class LocalChangeFeed(BaseChangeFeed):
    """Change feed that only reaches subscribers in the current process.

    ``publish`` awaits every handler, so once a write has returned all
    sessions in this process have already reloaded.
    """

    async def publish(self, event: ChangeEvent) -> None:
        await self._dispatch(event)

    async def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        return self._register(handler)

    async def close(self) -> None:
        self._handlers.clear()
