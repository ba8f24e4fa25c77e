"""Client-notes notifier.

Collects reviewer notes that settled for at least one batch window, mails
one digest grouped by client, and marks the notes as reported.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentdesk.config import settings
from contentdesk.core.database.base import utcnow
from contentdesk.integrations.mailer import EmailSender
from contentdesk.modules.records.models import Record
from contentdesk.modules.records.repos import RecordRepository


log = structlog.get_logger()

CAPTION_PREVIEW_LENGTH = 100


def build_digest(records_by_client: dict[str, list[Record]]) -> tuple[str, str]:
    """Subject and plain-text body of the notes digest."""
    total = sum(len(records) for records in records_by_client.values())
    subject = f"New Client Notes ({total} post{'s' if total != 1 else ''})"

    lines = ["The following posts have new client feedback:", ""]
    for client_name, records in records_by_client.items():
        lines.append(f"== {client_name} ==")
        for record in records:
            lines.append(record.date.strftime("%A, %d %B %Y"))
            lines.append(f"Client notes: {record.notes}")
            if record.caption:
                preview = record.caption[:CAPTION_PREVIEW_LENGTH]
                if len(record.caption) > CAPTION_PREVIEW_LENGTH:
                    preview += "..."
                lines.append(f"Current caption: {preview}")
            lines.append("")
    return subject, "\n".join(lines)


async def send_notes_digest(
    session_factory: async_sessionmaker[AsyncSession],
    sender: EmailSender,
    recipients: list[str],
    now: datetime | None = None,
    batch_minutes: int | None = None,
) -> dict[str, Any]:
    """Mail every unreported note older than the batch window.

    Nothing is marked notified unless the mail went out.

    Returns:
        Summary with the number of notes notified and the clients involved
    """
    if not sender.is_available:
        log.warning("notes_notify_skipped", reason="email_unavailable")
        return {"notified": 0, "clients": [], "skipped": "email_unavailable"}

    cutoff = (now or utcnow()) - timedelta(minutes=batch_minutes or settings.notes_batch_minutes)

    async with session_factory() as session:
        repo = RecordRepository(session)
        pending = await repo.list_unnotified_notes(cutoff)
        if not pending:
            log.info("notes_notify_nothing_new")
            return {"notified": 0, "clients": []}

        by_client: dict[str, list[Record]] = defaultdict(list)
        for record, tenant in pending:
            by_client[tenant.name or "Unknown Client"].append(record)

        subject, body = build_digest(by_client)
        result = await sender.send(recipients, subject, body)
        if not result.success:
            log.error("notes_notify_send_failed", error=result.error)
            return {"notified": 0, "clients": [], "error": result.error}

        count = await repo.mark_notified([record.id for record, _ in pending], cutoff)
        await session.commit()

    log.info("notes_notified", count=count, clients=list(by_client))
    return {"notified": count, "clients": list(by_client)}


async def notify_client_notes(ctx: dict[str, Any]) -> dict[str, Any]:
    """ARQ entry point for the notes notifier.

    Args:
        ctx: Worker context containing the database session factory
    """
    sender = ctx.get("email_sender") or EmailSender()
    return await send_notes_digest(
        ctx["db_session_factory"],
        sender,
        settings.notes_notify_to,
    )
