"""Record store: tenant-filtered reads, field-scoped writes, change feed.

Every operation runs in its own short transaction. Successful writes are
announced on the change feed after commit.
"""

from datetime import date
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentdesk.core.database.tenant import TenantScope
from contentdesk.core.errors import NotFoundError, PersistenceFailed
from contentdesk.core.feed import (
    ChangeAction,
    ChangeEvent,
    ChangeFeed,
    ChangeHandler,
    Unsubscribe,
)
from contentdesk.modules.records.models import Record
from contentdesk.modules.records.repos import RecordRepository
from contentdesk.modules.records.schemas import (
    RecordCreate,
    RecordSnapshot,
    infer_media_kind,
    to_column_value,
)


logger = structlog.get_logger()


class RecordStore:
    """Shared record storage used by every desk session.

    Example:
        store = RecordStore(async_session_factory, feed)
        records = await store.fetch(TenantScope.single(tenant_id))
        await store.patch(records[0].id, {"caption": "Hello"})
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: ChangeFeed,
    ) -> None:
        self._session_factory = session_factory
        self.feed = feed

    async def fetch(
        self,
        scope: TenantScope,
        start: date | None = None,
        end: date | None = None,
    ) -> list[RecordSnapshot]:
        """Every record visible to ``scope``, oldest scheduling date first.

        Raises:
            PersistenceFailed: If the store cannot be read
        """
        try:
            async with self._session_factory() as session:
                rows = await RecordRepository(session).list_in_scope(scope, start, end)
                return [RecordSnapshot.model_validate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error("record_fetch_failed", tenant_id=scope.tenant_id, error=str(e))
            raise PersistenceFailed("Failed to load records") from e

    async def get(self, record_id: str, scope: TenantScope | None = None) -> RecordSnapshot:
        """One record, optionally restricted to a scope.

        Raises:
            NotFoundError: If the record does not exist or is out of scope
            PersistenceFailed: If the store cannot be read
        """
        try:
            async with self._session_factory() as session:
                row = await RecordRepository(session).get_by_id(record_id, scope)
                snapshot = RecordSnapshot.model_validate(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error("record_fetch_failed", record_id=record_id, error=str(e))
            raise PersistenceFailed("Failed to load record") from e

        if snapshot is None:
            raise NotFoundError("Record not found", resource="record", resource_id=record_id)
        return snapshot

    async def patch(
        self,
        record_id: str,
        fields: dict[str, Any],
        expected_revision: int | None = None,
    ) -> RecordSnapshot:
        """Write only ``fields`` of one record; last write wins.

        Args:
            record_id: The record's ID
            fields: Field name to already-validated value
            expected_revision: Revision the writer last saw; a mismatch is
                logged as a conflict and the write still happens

        Raises:
            PersistenceFailed: If the write fails or the record is gone
        """
        values = {name: to_column_value(value) for name, value in fields.items()}
        try:
            async with self._session_factory() as session:
                result = await RecordRepository(session).patch(record_id, values, expected_revision)
                if result is None:
                    raise PersistenceFailed(
                        "Record no longer exists",
                        details={"record_id": record_id},
                    )
                await session.commit()
                snapshot = RecordSnapshot.model_validate(result.record)
        except SQLAlchemyError as e:
            logger.error(
                "record_write_failed",
                record_id=record_id,
                fields=sorted(values),
                error=str(e),
            )
            raise PersistenceFailed(details={"record_id": record_id}) from e

        if result.conflict:
            logger.warning(
                "record_write_conflict",
                record_id=record_id,
                fields=sorted(values),
                expected_revision=expected_revision,
                stored_revision=result.stored_revision,
            )
        logger.debug(
            "record_written",
            record_id=record_id,
            fields=sorted(values),
            revision=snapshot.revision,
        )

        await self._announce(ChangeAction.UPDATE, snapshot.id, snapshot.tenant_id)
        return snapshot

    async def create(self, data: RecordCreate, tenant_id: UUID) -> RecordSnapshot:
        """Insert a new record owned by ``tenant_id``.

        Raises:
            PersistenceFailed: If the insert fails (including a duplicate id)
        """
        record = Record(
            id=data.id or str(uuid4()),
            tenant_id=tenant_id,
            title=data.title,
            date=data.date,
            status=data.status.value,
            media_url=data.media_url,
            media_kind=(data.media_kind or infer_media_kind(data.media_url)).value,
            media_description=data.media_description,
            caption=data.caption,
            hashtags=[tag.strip().lstrip("#") for tag in data.hashtags if tag.strip().lstrip("#")],
            notes=data.notes,
        )
        try:
            async with self._session_factory() as session:
                record = await RecordRepository(session).create(record)
                await session.commit()
                snapshot = RecordSnapshot.model_validate(record)
        except SQLAlchemyError as e:
            logger.error("record_create_failed", record_id=record.id, error=str(e))
            raise PersistenceFailed("Failed to create record") from e

        logger.info("record_created", record_id=snapshot.id, tenant_id=str(tenant_id))
        await self._announce(ChangeAction.INSERT, snapshot.id, snapshot.tenant_id)
        return snapshot

    async def delete(self, record_id: str, scope: TenantScope) -> None:
        """Hard-delete one record in scope.

        Raises:
            NotFoundError: If the record does not exist or is out of scope
            PersistenceFailed: If the delete fails
        """
        try:
            async with self._session_factory() as session:
                repo = RecordRepository(session)
                record = await repo.get_by_id(record_id, scope)
                if record is None:
                    raise NotFoundError(
                        "Record not found",
                        resource="record",
                        resource_id=record_id,
                    )
                tenant_id = record.tenant_id
                await repo.delete(record)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("record_delete_failed", record_id=record_id, error=str(e))
            raise PersistenceFailed("Failed to delete record") from e

        logger.info("record_deleted", record_id=record_id, tenant_id=str(tenant_id))
        await self._announce(ChangeAction.DELETE, record_id, tenant_id)

    async def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        """Be told about every change to any record."""
        return await self.feed.subscribe(handler)

    async def _announce(self, action: ChangeAction, record_id: str, tenant_id: UUID) -> None:
        event = ChangeEvent(action=action, record_id=record_id, tenant_id=tenant_id)
        try:
            await self.feed.publish(event)
        except Exception as e:
            # The write is committed; subscribers catch up on the next change.
            logger.error(
                "change_publish_failed",
                record_id=record_id,
                action=action.value,
                error=str(e),
            )
