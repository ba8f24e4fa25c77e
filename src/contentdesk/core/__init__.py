"""Core services and cross-cutting concerns."""

from contentdesk.core.database import Base, TenantScope, get_db
from contentdesk.core.errors import (
    AppException,
    AuthenticationFailed,
    ForbiddenError,
    GenerationFailed,
    NotFoundError,
    PersistenceFailed,
    SchedulingFailed,
    UnauthorizedError,
    ValidationFailed,
    register_exception_handlers,
)


__all__ = [
    # Errors
    "AppException",
    "AuthenticationFailed",
    # Database
    "Base",
    "ForbiddenError",
    "GenerationFailed",
    "NotFoundError",
    "PersistenceFailed",
    "SchedulingFailed",
    "TenantScope",
    "UnauthorizedError",
    "ValidationFailed",
    "get_db",
    "register_exception_handlers",
]
