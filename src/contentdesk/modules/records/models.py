"""Record database models."""

from datetime import date as Day
from datetime import datetime

from sqlalchemy import JSON, Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from contentdesk.core.constants import (
    MAX_RECORD_ID_LENGTH,
    MAX_STATUS_LENGTH,
    MAX_TITLE_LENGTH,
)
from contentdesk.core.database.base import Base, TenantMixin, TimestampMixin
from contentdesk.modules.records.status import MediaKind, RecordStatus


class Record(Base, TimestampMixin, TenantMixin):
    """A schedulable content item (post) owned by one tenant.

    The id is chosen by whoever creates the record, so concurrent creations
    from different sessions never collide on a sequence.

    Attributes:
        title: Short working title
        date: Scheduling date (no time of day)
        status: One of ``RecordStatus``
        media_url: URL or inline data URL of the image/video
        media_kind: ``image`` or ``video``
        media_description: Free-text description of the media
        caption: Generated or hand-written caption
        hashtags: Ordered hashtags without the leading marker
        notes: Reviewer notes
        notes_updated_at: When notes last changed to a non-empty value
        notes_notified: Whether the notes notifier has reported the change
        revision: Incremented by every persisted patch; used to detect
            concurrent writers, never to block them
    """

    __tablename__ = "records"

    id: Mapped[str] = mapped_column(
        String(MAX_RECORD_ID_LENGTH),
        primary_key=True,
    )
    title: Mapped[str] = mapped_column(
        String(MAX_TITLE_LENGTH),
        default="",
        nullable=False,
    )
    date: Mapped[Day] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(MAX_STATUS_LENGTH),
        default=RecordStatus.DRAFT.value,
        nullable=False,
    )

    # Content
    media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_kind: Mapped[str] = mapped_column(
        String(16),
        default=MediaKind.IMAGE.value,
        nullable=False,
    )
    media_description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    caption: Mapped[str] = mapped_column(Text, default="", nullable=False)
    hashtags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # Notes notifier bookkeeping
    notes_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    notes_notified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    revision: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    def __repr__(self) -> str:
        return f"<Record(id={self.id}, tenant_id={self.tenant_id}, status={self.status})>"
