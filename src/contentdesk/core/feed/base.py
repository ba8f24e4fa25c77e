"""Change feed contract.

A change feed tells every subscriber that *something* in the record
store changed. Events are coarse: they name the record and the kind of
change but never the field, so subscribers are expected to refetch.
"""

import asyncio
import itertools
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import StrEnum
from typing import Protocol
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from contentdesk.core.database.base import utcnow


logger = structlog.get_logger()


class ChangeAction(StrEnum):
    """Kind of change that happened to a record."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ChangeEvent(BaseModel):
    """Notification that a record was created, updated or deleted."""

    action: ChangeAction
    record_id: str
    tenant_id: UUID
    at: datetime = Field(default_factory=utcnow)


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]
Unsubscribe = Callable[[], None]


class ChangeFeed(Protocol):
    """Interface every change feed backend implements."""

    async def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every subscriber."""
        ...

    async def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        """Register a handler; the returned callable releases it."""
        ...

    async def close(self) -> None:
        """Release every subscription and backend resource."""
        ...


class BaseChangeFeed:
    """Handler bookkeeping and dispatch shared by the feed backends."""

    def __init__(self) -> None:
        self._handlers: dict[int, ChangeHandler] = {}
        self._ids = itertools.count()

    @property
    def subscriber_count(self) -> int:
        """Number of live subscriptions."""
        return len(self._handlers)

    def _register(self, handler: ChangeHandler) -> Unsubscribe:
        key = next(self._ids)
        self._handlers[key] = handler

        def unsubscribe() -> None:
            self._handlers.pop(key, None)

        return unsubscribe

    async def _dispatch(self, event: ChangeEvent) -> None:
        """Run every handler; one failing handler never blocks the others."""
        handlers = list(self._handlers.values())
        if not handlers:
            return

        results = await asyncio.gather(
            *(handler(event) for handler in handlers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                logger.error(
                    "change_handler_failed",
                    record_id=event.record_id,
                    action=event.action.value,
                    error=str(result),
                    error_type=type(result).__name__,
                )
