"""Coalescing write queue.

Edits land in the session's view immediately and reach the store after a
quiet period. Timers are keyed by ``(record_id, field)``: a new edit for the
same key replaces the pending one, edits for different keys never touch
each other.
"""

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from contentdesk.core.errors import PersistenceFailed
from contentdesk.modules.records.schemas import RecordSnapshot
from contentdesk.modules.records.status import RecordStatus, entering_approved
from contentdesk.modules.records.store import RecordStore
from contentdesk.modules.records.view import RecordView


logger = structlog.get_logger()

WriteKey = tuple[str, str]
ApprovedHandler = Callable[[RecordSnapshot], Awaitable[None]]
FailureHandler = Callable[[PersistenceFailed, str, str], Awaitable[None]]


@dataclass
class PendingWrite:
    """A value waiting for its quiet period to end."""

    record_id: str
    field: str
    value: Any
    # Revision in view at edit time, used if the record has left the view
    revision: int
    fire_trigger: bool
    handle: asyncio.TimerHandle | None = None

    @property
    def key(self) -> WriteKey:
        return (self.record_id, self.field)


class CoalescingWriteQueue:
    """Debounced, field-scoped persistence for one session's edits.

    Args:
        store: Where writes go
        view: The session's in-memory projection, updated synchronously
        quiet_period: Seconds to wait after the last edit of a key
        on_approved: Awaited after a status write that entered Approved
            has been persisted
        on_failure: Awaited after a write failed; pending writes are
            already dropped by then
    """

    def __init__(
        self,
        store: RecordStore,
        view: RecordView,
        quiet_period: float,
        on_approved: ApprovedHandler | None = None,
        on_failure: FailureHandler | None = None,
        session_id: str | None = None,
    ) -> None:
        self.store = store
        self.view = view
        self.quiet_period = quiet_period
        self._on_approved = on_approved
        self._on_failure = on_failure
        self._session_id = session_id
        self._pending: dict[WriteKey, PendingWrite] = {}
        self._in_flight: set[asyncio.Task[None]] = set()
        self._record_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, record_id: str, field: str) -> bool:
        return (record_id, field) in self._pending

    def pending_values(self) -> dict[str, dict[str, Any]]:
        """Values shown in the view but not yet written, by record id."""
        values: dict[str, dict[str, Any]] = {}
        for write in self._pending.values():
            values.setdefault(write.record_id, {})[write.field] = write.value
        return values

    def apply(self, record_id: str, field: str, value: Any) -> RecordSnapshot:
        """Show an edit now and persist it after the quiet period.

        ``value`` must already be validated. For ``status`` the trigger
        eligibility is decided here, against the status currently in view.

        Returns:
            The record as it now appears in the view

        Raises:
            NotFoundError: If the record is not in view
            RuntimeError: If the queue has been closed
        """
        if self._closed:
            raise RuntimeError("Write queue is closed")

        current = self.view.get(record_id)
        key = (record_id, field)
        superseded = self._pending.pop(key, None)
        if superseded is not None and superseded.handle is not None:
            superseded.handle.cancel()
            logger.debug(
                "write_coalesced",
                record_id=record_id,
                field=field,
                session_id=self._session_id,
            )

        fire_trigger = False
        if field == "status":
            fire_trigger = entering_approved(current.status, value) or (
                superseded is not None
                and superseded.fire_trigger
                and value is RecordStatus.APPROVED
            )

        updated = self.view.update(record_id, {field: value})

        pending = PendingWrite(
            record_id=record_id,
            field=field,
            value=value,
            revision=current.revision,
            fire_trigger=fire_trigger,
        )
        loop = asyncio.get_running_loop()
        pending.handle = loop.call_later(self.quiet_period, self._start_write, key)
        self._pending[key] = pending

        logger.debug(
            "write_scheduled",
            record_id=record_id,
            field=field,
            fire_trigger=fire_trigger,
            session_id=self._session_id,
        )
        return updated

    def _start_write(self, key: WriteKey) -> None:
        pending = self._pending.pop(key, None)
        if pending is None:
            return
        self._spawn(pending)

    def _spawn(self, pending: PendingWrite) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(self._persist(pending))
        self._in_flight.add(task)
        task.add_done_callback(self._write_done)
        return task

    def _write_done(self, task: asyncio.Task[None]) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "write_task_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                session_id=self._session_id,
            )

    def _seen_revision(self, pending: PendingWrite) -> int:
        if pending.record_id in self.view:
            return self.view.get(pending.record_id).revision
        return pending.revision

    async def _persist(self, pending: PendingWrite) -> None:
        # One write per record at a time, so each compares against the
        # revision left by this session's previous write
        try:
            async with self._record_locks[pending.record_id]:
                snapshot = await self.store.patch(
                    pending.record_id,
                    {pending.field: pending.value},
                    expected_revision=self._seen_revision(pending),
                )
                self.view.note_revision(pending.record_id, snapshot.revision)
        except PersistenceFailed as e:
            dropped = self.drop()
            logger.warning(
                "write_failed",
                record_id=pending.record_id,
                field=pending.field,
                dropped_pending=dropped,
                error=e.message,
                session_id=self._session_id,
            )
            if self._on_failure is not None:
                await self._on_failure(e, pending.record_id, pending.field)
            return

        logger.info(
            "write_persisted",
            record_id=pending.record_id,
            field=pending.field,
            revision=snapshot.revision,
            session_id=self._session_id,
        )

        if pending.fire_trigger and self._on_approved is not None:
            await self._on_approved(snapshot)

    async def wait_idle(self) -> None:
        """Wait until every write that already started has finished."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def flush(self) -> int:
        """Persist every pending edit now instead of after its quiet period.

        Returns:
            Number of writes started by the flush
        """
        pending = list(self._pending.values())
        self._pending.clear()
        for write in pending:
            if write.handle is not None:
                write.handle.cancel()
            self._spawn(write)
        await self.wait_idle()
        return len(pending)

    def drop(self) -> int:
        """Forget every pending edit without writing it.

        Returns:
            Number of edits dropped
        """
        dropped = len(self._pending)
        for write in self._pending.values():
            if write.handle is not None:
                write.handle.cancel()
        self._pending.clear()
        return dropped

    def discard_record(self, record_id: str) -> int:
        """Forget pending edits of one record, e.g. before deleting it."""
        keys = [key for key in self._pending if key[0] == record_id]
        for key in keys:
            write = self._pending.pop(key)
            if write.handle is not None:
                write.handle.cancel()
        return len(keys)

    async def close(self, flush: bool = True) -> int:
        """Stop accepting edits and settle the pending ones.

        Returns:
            Number of pending edits written (or dropped when ``flush`` is False)
        """
        self._closed = True
        if flush:
            return await self.flush()
        dropped = self.drop()
        await self.wait_idle()
        return dropped
