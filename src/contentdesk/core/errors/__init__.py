"""Error handling module with RFC 7807 Problem Details."""

from contentdesk.core.errors.exceptions import (
    AppException,
    AuthenticationFailed,
    ForbiddenError,
    GenerationFailed,
    NotFoundError,
    PersistenceFailed,
    SchedulingFailed,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationFailed,
)
from contentdesk.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    problem_from_exception,
    register_exception_handlers,
)


__all__ = [
    # Exceptions
    "AppException",
    "AuthenticationFailed",
    # Handlers
    "FieldError",
    "ForbiddenError",
    "GenerationFailed",
    "NotFoundError",
    "PersistenceFailed",
    "ProblemDetail",
    "SchedulingFailed",
    "ServiceUnavailableError",
    "UnauthorizedError",
    "ValidationFailed",
    "problem_from_exception",
    "register_exception_handlers",
]
