"""Record repository for database operations."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import case, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from contentdesk.core.database.base import utcnow
from contentdesk.core.database.tenant import TenantScope
from contentdesk.modules.records.models import Record
from contentdesk.modules.tenants.models import Tenant


@dataclass
class PatchResult:
    """Outcome of a partial update.

    Attributes:
        record: The record after the update
        stored_revision: Revision the row had before this write
        conflict: True when the writer expected a different revision
    """

    record: Record
    stored_revision: int
    conflict: bool


class RecordRepository:
    """Repository for Record database operations.

    Reads are always filtered through a ``TenantScope``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, record: Record) -> Record:
        """Create a new record.

        Args:
            record: Record instance to create

        Returns:
            The created record
        """
        self.session.add(record)
        await self.session.flush()
        await self.session.refresh(record)
        return record

    async def get_by_id(self, record_id: str, scope: TenantScope | None = None) -> Record | None:
        """Get a record by ID.

        Args:
            record_id: The record's ID
            scope: Optional tenant scope; records outside it are not returned

        Returns:
            Record if found, None otherwise
        """
        stmt = select(Record).where(Record.id == record_id)
        if scope is not None:
            stmt = scope.apply(stmt, Record)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_in_scope(
        self,
        scope: TenantScope,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Record]:
        """List records visible to a scope.

        Ordered by scheduling date, then creation order; id breaks any
        remaining tie so two reads of the same data always agree.

        Args:
            scope: Tenant scope to filter by
            start: Optional first scheduling date (inclusive)
            end: Optional last scheduling date (inclusive)

        Returns:
            Ordered list of records
        """
        stmt = scope.apply(select(Record), Record)
        if start is not None:
            stmt = stmt.where(Record.date >= start)
        if end is not None:
            stmt = stmt.where(Record.date <= end)
        stmt = stmt.order_by(Record.date.asc(), Record.created_at.asc(), Record.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def patch(
        self,
        record_id: str,
        values: dict[str, Any],
        expected_revision: int | None = None,
    ) -> PatchResult | None:
        """Write only the given columns of one record.

        A single UPDATE sets the columns and bumps the revision, so
        concurrent writers each get their own revision. A mismatch with
        ``expected_revision`` is reported, not enforced: the write always
        goes through.

        Editing ``notes`` to a new non-empty value stamps
        ``notes_updated_at`` and clears ``notes_notified``.

        Args:
            record_id: The record's ID
            values: Column name to new value
            expected_revision: Revision the writer last observed

        Returns:
            PatchResult, or None if the record does not exist
        """
        assignments: dict[str, Any] = dict(values)
        notes = values.get("notes")
        if notes:
            # Right-hand sides see the row as it was before this statement
            changed = Record.notes != notes
            assignments["notes_updated_at"] = case(
                (changed, literal(utcnow(), Record.notes_updated_at.type)),
                else_=Record.notes_updated_at,
            )
            assignments["notes_notified"] = case((changed, False), else_=Record.notes_notified)
        assignments["revision"] = Record.revision + 1

        stmt = (
            update(Record)
            .where(Record.id == record_id)
            .values(**assignments)
            .returning(Record)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        record = result.scalar_one_or_none()
        if record is None:
            return None

        stored_revision = record.revision - 1
        conflict = expected_revision is not None and expected_revision != stored_revision
        return PatchResult(record=record, stored_revision=stored_revision, conflict=conflict)

    async def delete(self, record: Record) -> None:
        """Delete a record.

        Args:
            record: Record instance to delete
        """
        await self.session.delete(record)
        await self.session.flush()

    async def list_unnotified_notes(self, updated_before: datetime) -> list[tuple[Record, Tenant]]:
        """Records whose notes changed before a cut-off and were not reported.

        Args:
            updated_before: Only notes last edited before this instant

        Returns:
            ``(record, tenant)`` pairs, oldest note first
        """
        stmt = (
            select(Record, Tenant)
            .join(Tenant, Tenant.id == Record.tenant_id)
            .where(
                Record.notes_notified == False,  # noqa: E712
                Record.notes != "",
                Record.notes_updated_at.is_not(None),
                Record.notes_updated_at < updated_before,
            )
            .order_by(Record.notes_updated_at.asc())
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def mark_notified(self, record_ids: list[str], updated_before: datetime) -> int:
        """Flag records as reported by the notes notifier.

        Notes edited at or after ``updated_before`` keep their flag cleared,
        so an edit made while the digest was being sent is reported next time.

        Args:
            record_ids: IDs to flag
            updated_before: Cutoff the notes were listed with

        Returns:
            Number of rows updated
        """
        if not record_ids:
            return 0
        stmt = (
            update(Record)
            .where(
                Record.id.in_(record_ids),
                Record.notes_updated_at < updated_before,
            )
            .values(notes_notified=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
