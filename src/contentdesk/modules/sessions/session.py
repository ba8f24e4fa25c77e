"""Desk session: one open dashboard held server-side.

A session owns its tenant scope, an in-memory record view, the write
queue feeding the store and the live view subscription refreshing the
view. Failures that happen after a request returned are kept as notices.
"""

import asyncio
from collections import deque
from datetime import date, timedelta
from typing import Any
from uuid import UUID

import structlog

from contentdesk.core.auth.gate import SessionGrant
from contentdesk.core.constants import MAX_NOTICES_PER_SESSION
from contentdesk.core.database.tenant import TenantScope
from contentdesk.core.errors import (
    AppException,
    ForbiddenError,
    PersistenceFailed,
    ValidationFailed,
    problem_from_exception,
)
from contentdesk.integrations.captioning import CaptionGenerator, load_image
from contentdesk.modules.records.publisher import AutoPublisher, PublishOutcome
from contentdesk.modules.records.schemas import (
    RecordCreate,
    RecordSnapshot,
    coerce_field_value,
)
from contentdesk.modules.records.status import MediaKind, RecordStatus
from contentdesk.modules.records.store import RecordStore
from contentdesk.modules.records.view import RecordView
from contentdesk.modules.records.write_queue import CoalescingWriteQueue
from contentdesk.modules.sessions.live_view import LiveViewSynchronizer
from contentdesk.modules.sessions.schemas import Notice, NoticeKind
from contentdesk.modules.tenants.services import TenantDirectory, brand_context


logger = structlog.get_logger()

_NOTICE_KINDS = {
    "persistence_failed": NoticeKind.PERSISTENCE_FAILED,
    "scheduling_failed": NoticeKind.SCHEDULING_FAILED,
    "generation_failed": NoticeKind.GENERATION_FAILED,
}


def schedule_dates(start: date, count: int, every_days: int = 1) -> list[date]:
    """Posting dates for ``count`` records, ``every_days`` apart."""
    return [start + timedelta(days=i * every_days) for i in range(count)]


class DeskSession:
    """Server-side state of one dashboard.

    Example:
        desk = DeskSession(session_id, grant, store, tenants, publisher)
        await desk.open()
        desk.apply_edit(record_id, "caption", "Hello")
        await desk.close()
    """

    def __init__(
        self,
        session_id: str,
        grant: SessionGrant,
        store: RecordStore,
        tenants: TenantDirectory,
        publisher: AutoPublisher,
        captioner: CaptionGenerator | None = None,
        quiet_period: float = 0.5,
        max_media_bytes: int = 2 * 1024 * 1024,
    ) -> None:
        self.id = session_id
        self.grant = grant
        self.store = store
        self.tenants = tenants
        self.publisher = publisher
        self.captioner = captioner
        self.max_media_bytes = max_media_bytes

        self.view = RecordView()
        self.notices: deque[Notice] = deque(maxlen=MAX_NOTICES_PER_SESSION)
        self.queue = CoalescingWriteQueue(
            store,
            self.view,
            quiet_period,
            on_approved=self._on_approved,
            on_failure=self._on_write_failed,
            session_id=session_id,
        )
        self.live_view = LiveViewSynchronizer(
            store,
            self.view,
            grant.scope,
            on_error=self._on_reload_failed,
            overlay=self.queue.pending_values,
            session_id=session_id,
        )
        self._suspended = False
        self._resume_lock = asyncio.Lock()
        self._log = logger.bind(session_id=session_id[:8])

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------

    @property
    def scope(self) -> TenantScope:
        return self.live_view.scope

    @property
    def is_super(self) -> bool:
        return self.grant.is_super

    @property
    def records(self) -> list[RecordSnapshot]:
        return self.view.records

    async def open(self) -> None:
        """Subscribe to changes and load the initial view."""
        await self.live_view.start()
        self._log.info(
            "session_opened",
            tenant_id=str(self.grant.tenant.id),
            privilege=self.grant.privilege.value,
            records=len(self.view),
        )

    async def close(self, flush: bool = True) -> int:
        """Settle pending edits and release the subscription.

        Returns:
            Number of pending edits written (or dropped)
        """
        settled = await self.queue.close(flush=flush)
        self.live_view.stop()
        self._log.info("session_closed", flushed=flush, settled=settled)
        return settled

    @property
    def is_suspended(self) -> bool:
        return self._suspended

    async def suspend(self) -> int:
        """Write pending edits and drop the change feed subscription.

        The session id and its grant stay valid; the next request resumes.

        Returns:
            Number of pending edits written
        """
        settled = await self.queue.flush()
        self.live_view.stop()
        self._suspended = True
        self._log.info("session_suspended", settled=settled)
        return settled

    async def resume(self) -> None:
        """Subscribe again and reload whatever changed while suspended."""
        async with self._resume_lock:
            if not self._suspended:
                return
            await self.live_view.start()
            self._suspended = False
        self._log.info("session_resumed", records=len(self.view))

    def require_super(self) -> None:
        """Raise unless this is an agency session."""
        if not self.is_super:
            raise ForbiddenError(
                "Agency privileges required",
                details={"required_privilege": "super"},
            )

    async def select_scope(self, tenant_id: UUID | None) -> list[RecordSnapshot]:
        """Narrow an agency session to one tenant, or widen it to all.

        Pending edits are written first so nothing is lost with the old view.

        Raises:
            ForbiddenError: If the session is not an agency session
            NotFoundError: If the tenant does not exist
        """
        self.require_super()
        if tenant_id is not None:
            await self.tenants.get(tenant_id)
        await self.queue.flush()
        scope = TenantScope(tenant_id=tenant_id, is_super=True)
        records = await self.live_view.rescope(scope)
        self._log.info("scope_selected", tenant_id=str(tenant_id) if tenant_id else "all")
        return records

    async def reload(self) -> list[RecordSnapshot]:
        """Refetch the whole view now."""
        return await self.live_view.reload()

    # ------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------

    def apply_edit(self, record_id: str, field: str, value: Any) -> RecordSnapshot:
        """Validate one field edit, show it, and queue it for the store.

        Raises:
            ValidationFailed: If the value is rejected
            NotFoundError: If the record is not in view
        """
        coerced = coerce_field_value(field, value, self.max_media_bytes)
        return self.queue.apply(record_id, field, coerced)

    def approve_all(self, start: date | None = None, end: date | None = None) -> list[str]:
        """Set every visible record in the date range to Approved.

        Records already Approved or Posted are left alone. Each record is an
        independent write through the queue.

        Returns:
            IDs of the records that were changed
        """
        approved = []
        for record in self.view.records:
            if start is not None and record.date < start:
                continue
            if end is not None and record.date > end:
                continue
            if record.status in (RecordStatus.APPROVED, RecordStatus.POSTED):
                continue
            self.queue.apply(record.id, "status", RecordStatus.APPROVED)
            approved.append(record.id)
        self._log.info("approve_all", count=len(approved))
        return approved

    async def create_record(self, data: RecordCreate) -> RecordSnapshot:
        """Create a record in scope straight in the store.

        Raises:
            ForbiddenError: If the session is not an agency session
            ValidationFailed: If no tenant can be determined or media is too large
        """
        self.require_super()
        tenant_id = self._target_tenant(data.tenant_id)
        if data.media_url:
            coerce_field_value("media_url", data.media_url, self.max_media_bytes)

        await self.tenants.get(tenant_id)
        return await self._store_new(data, tenant_id)

    async def generate_records(
        self,
        tenant_id: UUID | None,
        count: int,
        start: date,
        every_days: int = 1,
        guidelines: str | None = None,
    ) -> list[RecordSnapshot]:
        """Create Draft records from generated post ideas.

        Records are titled ``Post 1`` .. ``Post n`` and dated ``every_days``
        apart from ``start``. Each one is written straight to the store.

        Raises:
            ForbiddenError: If the session is not an agency session
            ValidationFailed: If no tenant can be determined or generation
                is not available
            NotFoundError: If the tenant does not exist
            GenerationFailed: If the model fails or returns no ideas
        """
        self.require_super()
        target = self._target_tenant(tenant_id)
        if self.captioner is None:
            raise ValidationFailed("Caption generation is not available")

        tenant = await self.tenants.get(target)
        ideas = await self.captioner.generate_ideas(brand_context(tenant), count, guidelines)

        records = []
        dates = schedule_dates(start, len(ideas), every_days)
        for number, (idea, when) in enumerate(zip(ideas, dates, strict=True), start=1):
            data = RecordCreate(
                title=f"Post {number}",
                date=when,
                caption=idea.caption,
                hashtags=idea.hashtags,
            )
            records.append(await self._store_new(data, target))

        self._log.info(
            "records_generated",
            tenant_id=str(target),
            requested=count,
            created=len(records),
        )
        return records

    def _target_tenant(self, requested: UUID | None) -> UUID:
        tenant_id = self.scope.tenant_id or requested
        if tenant_id is None:
            raise ValidationFailed(
                "Choose a client for the new post",
                errors=[{"field": "tenant_id", "message": "required when viewing all clients"}],
            )
        if requested is not None and not self.scope.allows(requested):
            raise ValidationFailed(
                "Client is not in view",
                errors=[{"field": "tenant_id", "message": "outside the current scope"}],
            )
        return tenant_id

    async def _store_new(self, data: RecordCreate, tenant_id: UUID) -> RecordSnapshot:
        record = await self.store.create(data, tenant_id)
        if record.id not in self.view and self.scope.allows(record.tenant_id):
            self.view.add(record)
        return record

    async def delete_record(self, record_id: str) -> None:
        """Delete a record for good.

        Raises:
            ForbiddenError: If the session is not an agency session
            NotFoundError: If the record is not in scope
        """
        self.require_super()
        self.queue.discard_record(record_id)
        await self.store.delete(record_id, self.scope)
        self.view.remove(record_id)

    async def generate_caption(
        self,
        record_id: str,
        guidelines: str | None = None,
    ) -> RecordSnapshot:
        """Fill caption and hashtags of a record from its image.

        Raises:
            ValidationFailed: If the record has no image
            GenerationFailed: If the image or the model fails
        """
        record = self.view.get(record_id)
        if not record.media_url or record.media_kind is MediaKind.VIDEO:
            raise ValidationFailed(
                "Add an image before generating a caption",
                errors=[{"field": "media_url", "message": "an image is required"}],
            )
        if self.captioner is None:
            raise ValidationFailed("Caption generation is not available")

        image, mime_type = await load_image(record.media_url, self.max_media_bytes)
        tenant = await self.tenants.get(record.tenant_id)
        result = await self.captioner.generate(image, mime_type, brand_context(tenant), guidelines)

        self.apply_edit(record_id, "caption", result.caption)
        return self.apply_edit(record_id, "hashtags", result.hashtags)

    # ------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------

    def drain_notices(self) -> list[Notice]:
        """Hand over every notice and forget them."""
        notices = list(self.notices)
        self.notices.clear()
        return notices

    def _notify(
        self,
        error: AppException,
        record_id: str | None = None,
        field: str | None = None,
        kind: NoticeKind | None = None,
    ) -> None:
        notice = Notice(
            kind=kind or _NOTICE_KINDS.get(error.error_code, NoticeKind.PERSISTENCE_FAILED),
            message=error.message,
            record_id=record_id,
            field=field,
            problem=problem_from_exception(error),
        )
        self.notices.append(notice)
        self._log.warning(
            "notice_added",
            kind=notice.kind.value,
            record_id=record_id,
            message=error.message,
        )

    async def _on_write_failed(self, error: PersistenceFailed, record_id: str, field: str) -> None:
        self._notify(error, record_id=record_id, field=field, kind=NoticeKind.PERSISTENCE_FAILED)
        try:
            await self.live_view.reload()
        except PersistenceFailed as e:
            self._notify(e, kind=NoticeKind.RELOAD_FAILED)

    async def _on_reload_failed(self, error: PersistenceFailed) -> None:
        self._notify(error, kind=NoticeKind.RELOAD_FAILED)

    async def _on_approved(self, record: RecordSnapshot) -> None:
        result = await self.publisher.publish(record)
        if result.outcome is PublishOutcome.POSTED:
            if record.id in self.view and not self.queue.is_pending(record.id, "status"):
                self.view.update(
                    record.id,
                    {"status": RecordStatus.POSTED, "revision": result.record.revision},
                )
        elif result.error is not None:
            self._notify(result.error, record_id=record.id)
