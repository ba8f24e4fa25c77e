"""Database layer - session management, base models, and mixins."""

from contentdesk.core.database.base import Base, TenantMixin, TimestampMixin, UUIDMixin
from contentdesk.core.database.session import (
    async_engine,
    async_session_factory,
    build_engine,
    build_session_factory,
    get_db,
)
from contentdesk.core.database.tenant import TenantContextRequired, TenantScope


__all__ = [
    "Base",
    "TenantContextRequired",
    "TenantMixin",
    "TenantScope",
    "TimestampMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "get_db",
]
