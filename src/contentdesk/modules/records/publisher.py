"""Auto-publish of records that entered Approved."""

from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from enum import StrEnum
from zoneinfo import ZoneInfo

import structlog

from contentdesk.config import settings
from contentdesk.core.constants import HASHTAG_MARKER
from contentdesk.core.errors import AppException, PersistenceFailed, SchedulingFailed
from contentdesk.integrations.scheduling import (
    ScheduleRequest,
    SchedulingClient,
    is_public_media,
)
from contentdesk.modules.records.schemas import RecordSnapshot
from contentdesk.modules.records.status import RecordStatus
from contentdesk.modules.records.store import RecordStore
from contentdesk.modules.tenants.services import TenantDirectory


logger = structlog.get_logger()


class PublishOutcome(StrEnum):
    """What happened to an approved record."""

    NO_ACCOUNTS = "no_accounts"
    MEDIA_MISSING = "media_missing"
    POSTED = "posted"
    FAILED = "failed"


@dataclass
class PublishResult:
    """Outcome of one auto-publish attempt.

    Attributes:
        outcome: Which branch was taken
        record: The record afterwards (status Posted only on success)
        scheduled_id: Id the scheduling service gave the post
        error: The failure to report to the session, if any
    """

    outcome: PublishOutcome
    record: RecordSnapshot
    scheduled_id: str | None = None
    error: AppException | None = None


def compose_content(record: RecordSnapshot) -> str:
    """Caption followed by hashtags; the description stands in for a missing caption."""
    text = record.caption.strip() or record.media_description.strip()
    tags = " ".join(f"{HASHTAG_MARKER}{tag}" for tag in record.hashtags if tag)
    return " ".join(part for part in (text, tags) if part)


def publish_at(day: date, time_of_day: time | None = None, timezone: str | None = None) -> datetime:
    """UTC instant for a scheduling date at the configured local time."""
    local = datetime.combine(
        day,
        time_of_day or settings.publish_time_of_day,
        tzinfo=ZoneInfo(timezone or settings.publish_timezone),
    )
    return local.astimezone(UTC)


class AutoPublisher:
    """Sends approved records to the scheduling service and marks them Posted.

    Never raises for scheduling problems: every branch ends in a
    ``PublishResult`` and the record is left Approved unless the publish
    went through.
    """

    def __init__(
        self,
        store: RecordStore,
        tenants: TenantDirectory,
        scheduler: SchedulingClient,
    ) -> None:
        self.store = store
        self.tenants = tenants
        self.scheduler = scheduler

    async def publish(self, record: RecordSnapshot) -> PublishResult:
        """Run the auto-publish side effect for one record.

        Args:
            record: The record as persisted with status Approved
        """
        log = logger.bind(record_id=record.id, tenant_id=str(record.tenant_id))

        try:
            tenant = await self.tenants.get(record.tenant_id)
        except AppException as e:
            log.error("publish_failed", reason=e.message)
            return PublishResult(PublishOutcome.FAILED, record, error=e)

        accounts = tenant.integration_accounts
        if not accounts:
            log.info("publish_skipped", reason="no_accounts")
            return PublishResult(PublishOutcome.NO_ACCOUNTS, record)

        if self.scheduler.requires_media(accounts) and not is_public_media(record.media_url):
            log.info("publish_skipped", reason="media_missing")
            return PublishResult(PublishOutcome.MEDIA_MISSING, record)

        request = ScheduleRequest(
            accounts=accounts,
            content=compose_content(record),
            media_url=record.media_url,
            media_kind=record.media_kind.value,
            when_utc=publish_at(record.date),
            timezone=settings.publish_timezone,
        )
        log.info("publish_started", platforms=[a.platform for a in accounts])

        try:
            result = await self.scheduler.schedule(request)
        except AppException as e:
            log.warning("publish_failed", reason=e.message, error_code=e.error_code)
            error = e if isinstance(e, SchedulingFailed) else SchedulingFailed(e.message)
            return PublishResult(PublishOutcome.FAILED, record, error=error)

        try:
            posted = await self.store.patch(
                record.id,
                {"status": RecordStatus.POSTED},
                expected_revision=record.revision,
            )
        except PersistenceFailed as e:
            log.error("publish_status_write_failed", scheduled_id=result.scheduled_id)
            return PublishResult(
                PublishOutcome.FAILED,
                record,
                scheduled_id=result.scheduled_id,
                error=e,
            )

        log.info("publish_succeeded", scheduled_id=result.scheduled_id)
        return PublishResult(PublishOutcome.POSTED, posted, scheduled_id=result.scheduled_id)
