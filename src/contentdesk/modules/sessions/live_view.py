"""Live view synchronizer.

Keeps one session's record view in step with the store by refetching the
whole scope whenever the change feed reports anything at all.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from contentdesk.core.database.tenant import TenantScope
from contentdesk.core.errors import PersistenceFailed
from contentdesk.core.feed import ChangeEvent, Unsubscribe
from contentdesk.modules.records.schemas import RecordSnapshot
from contentdesk.modules.records.store import RecordStore
from contentdesk.modules.records.view import RecordView


logger = structlog.get_logger()

ReloadErrorHandler = Callable[[PersistenceFailed], Awaitable[None]]
PendingOverlay = Callable[[], dict[str, dict[str, Any]]]


class LiveViewSynchronizer:
    """Change feed subscription plus full refetch for one session.

    Reloads are serialized so two notifications arriving together never
    interleave their writes to the view. When an ``overlay`` is given, its
    values (edits not yet written) are laid over the fetched records so a
    reload never hides them.
    """

    def __init__(
        self,
        store: RecordStore,
        view: RecordView,
        scope: TenantScope,
        on_error: ReloadErrorHandler | None = None,
        overlay: PendingOverlay | None = None,
        session_id: str | None = None,
    ) -> None:
        self.store = store
        self.view = view
        self.scope = scope
        self._on_error = on_error
        self._overlay = overlay
        self._session_id = session_id
        self._unsubscribe: Unsubscribe | None = None
        self._lock = asyncio.Lock()

    @property
    def is_subscribed(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> list[RecordSnapshot]:
        """Subscribe and load the scope for the first time."""
        if self._unsubscribe is None:
            self._unsubscribe = await self.store.subscribe(self._on_change)
            logger.debug(
                "live_view_subscribed",
                session_id=self._session_id,
                tenant_id=str(self.scope.tenant_id) if self.scope.tenant_id else "all",
            )
        return await self.reload()

    async def reload(self) -> list[RecordSnapshot]:
        """Discard the view and refetch every record in scope.

        Raises:
            PersistenceFailed: If the store cannot be read; the view is left
                as it was
        """
        async with self._lock:
            records = await self.store.fetch(self.scope)
            if self._overlay is not None:
                pending = self._overlay()
                records = [
                    record.model_copy(update=pending[record.id]) if record.id in pending else record
                    for record in records
                ]
            self.view.replace(records)
        logger.debug("live_view_reloaded", session_id=self._session_id, records=len(records))
        return records

    async def _on_change(self, event: ChangeEvent) -> None:
        try:
            await self.reload()
        except PersistenceFailed as e:
            logger.warning(
                "live_view_reload_failed",
                session_id=self._session_id,
                record_id=event.record_id,
                error=e.message,
            )
            if self._on_error is not None:
                await self._on_error(e)

    async def rescope(self, scope: TenantScope) -> list[RecordSnapshot]:
        """Switch to another scope, renewing the subscription."""
        self.stop()
        self.scope = scope
        return await self.start()

    def stop(self) -> None:
        """Release the change feed subscription."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.debug("live_view_unsubscribed", session_id=self._session_id)
