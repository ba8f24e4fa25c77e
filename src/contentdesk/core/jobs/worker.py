"""ARQ worker configuration.

Defines the worker settings including registered jobs,
cron schedules, and startup/shutdown hooks.
"""

from typing import Any, ClassVar

import structlog
from arq import cron

from contentdesk.config import settings
from contentdesk.core.database.session import build_engine, build_session_factory
from contentdesk.core.jobs.tasks.notify_notes import notify_client_notes
from contentdesk.core.jobs.utils import get_redis_settings
from contentdesk.core.logging import configure_logging
from contentdesk.integrations.mailer import EmailSender


def notify_minutes() -> set[int]:
    """Minutes of the hour at which the notes notifier runs."""
    step = max(1, min(settings.notes_batch_minutes, 60))
    return set(range(0, 60, step))


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources for the worker.

    Called once when the worker starts.

    Args:
        ctx: Worker context dict (shared across all jobs)
    """
    configure_logging()
    log = structlog.get_logger()
    log.info("worker_startup", environment=settings.environment)

    engine = build_engine(pool_size=settings.worker_database_pool_size, max_overflow=0)
    ctx["db_engine"] = engine
    ctx["db_session_factory"] = build_session_factory(engine)
    ctx["email_sender"] = EmailSender()

    log.info("worker_startup_complete")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when the worker stops.

    Args:
        ctx: Worker context dict
    """
    log = structlog.get_logger()
    log.info("worker_shutdown")

    engine = ctx.get("db_engine")
    if engine:
        await engine.dispose()
        log.info("database_engine_disposed")

    log.info("worker_shutdown_complete")


class WorkerSettings:
    """ARQ worker settings.

    Run the worker with:
        arq contentdesk.core.jobs.worker.WorkerSettings
    """

    functions: ClassVar[list[Any]] = [
        notify_client_notes,
    ]

    cron_jobs: ClassVar[list[Any]] = [
        cron(notify_client_notes, minute=notify_minutes(), unique=True),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = get_redis_settings()

    max_jobs = 10
    job_timeout = 300
    keep_result = 3600
    # A failed send leaves notes unmarked; the next run picks them up
    retry_jobs = False
