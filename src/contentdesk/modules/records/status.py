"""Record statuses, media kinds and status summaries."""

from collections.abc import Iterable
from datetime import date
from enum import StrEnum


class RecordStatus(StrEnum):
    """Approval state of a record.

    Forward order is Draft -> For Approval -> Approved -> Posted.
    ``GENERATED`` is a legacy starting state treated like Draft; nothing
    moves a record into it any more, but stored rows may still carry it.
    Backward moves are allowed by direct edits.
    """

    DRAFT = "Draft"
    GENERATED = "Generated"
    FOR_APPROVAL = "For Approval"
    APPROVED = "Approved"
    POSTED = "Posted"

    @property
    def is_in_progress(self) -> bool:
        return self in (RecordStatus.DRAFT, RecordStatus.GENERATED)


class MediaKind(StrEnum):
    """Kind of media attached to a record."""

    IMAGE = "image"
    VIDEO = "video"


def entering_approved(previous: RecordStatus | None, new: RecordStatus) -> bool:
    """Whether a status write is a forward entry into Approved.

    Args:
        previous: Status before the edit, as the editing session saw it
        new: Status being written

    Returns:
        True when ``new`` is Approved and ``previous`` was anything else
    """
    return new is RecordStatus.APPROVED and previous is not RecordStatus.APPROVED


class SummaryKind(StrEnum):
    """Aggregate state of a tenant's records, worst first."""

    OUTSTANDING = "outstanding"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    POSTED = "posted"
    NO_POSTS = "no_posts"

    @property
    def label(self) -> str:
        return _SUMMARY_LABELS[self]


_SUMMARY_LABELS = {
    SummaryKind.OUTSTANDING: "Outstanding",
    SummaryKind.IN_PROGRESS: "In Progress",
    SummaryKind.APPROVED: "Approved",
    SummaryKind.POSTED: "Posted",
    SummaryKind.NO_POSTS: "No posts scheduled",
}


def summarize(items: Iterable[tuple[date, RecordStatus]], today: date) -> SummaryKind:
    """Reduce a tenant's records to the state that most needs attention.

    A record is outstanding when its date has passed and it is not Posted,
    or when it is still waiting for approval.

    Args:
        items: ``(scheduling date, status)`` pairs for the window
        today: Reference date for overdue checks

    Returns:
        The highest-priority summary kind
    """
    pairs = list(items)
    if not pairs:
        return SummaryKind.NO_POSTS

    statuses = [status for _, status in pairs]

    if any(
        (day < today and status is not RecordStatus.POSTED)
        or status is RecordStatus.FOR_APPROVAL
        for day, status in pairs
    ):
        return SummaryKind.OUTSTANDING
    if all(status is RecordStatus.POSTED for status in statuses):
        return SummaryKind.POSTED
    if any(status.is_in_progress for status in statuses):
        return SummaryKind.IN_PROGRESS
    if any(status is RecordStatus.APPROVED for status in statuses):
        return SummaryKind.APPROVED
    return SummaryKind.NO_POSTS
