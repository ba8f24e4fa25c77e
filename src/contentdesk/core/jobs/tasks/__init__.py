"""Background job tasks.

Each task module defines async functions registered in the worker.
"""

from contentdesk.core.jobs.tasks.notify_notes import notify_client_notes


__all__ = [
    "notify_client_notes",
]
