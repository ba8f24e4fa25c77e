"""Background job processing with ARQ.

Runs the client-notes notifier on a cron schedule and on demand.
"""

from contentdesk.core.jobs.registry import (
    close_arq_pool,
    enqueue,
    get_arq_pool,
    init_arq_pool,
)


__all__ = [
    "close_arq_pool",
    "enqueue",
    "get_arq_pool",
    "init_arq_pool",
]
