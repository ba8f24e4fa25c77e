"""Domain exceptions for the application.

These exceptions represent business-logic errors and are automatically
converted to RFC 7807 Problem Details responses by the exception handlers.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a requested resource is not found.

    Example:
        raise NotFoundError("Record not found", resource="record", resource_id=rid)
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class ValidationFailed(AppException):
    """Raised when an edit is rejected before any write is attempted.

    Example:
        raise ValidationFailed(
            "Image is too large",
            errors=[{"field": "media_url", "message": "exceeds 2097152 bytes"}]
        )
    """

    message = "Validation error"
    error_code = "validation_error"
    status_code = 422

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class AuthenticationFailed(AppException):
    """Raised when a shared secret matches no tenant.

    Example:
        raise AuthenticationFailed()
    """

    message = "Incorrect access code"
    error_code = "authentication_failed"
    status_code = 401


class UnauthorizedError(AppException):
    """Raised when a session handle is missing or unknown.

    Example:
        raise UnauthorizedError("Unknown session")
    """

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    """Raised when a session lacks the privileges for an action.

    Example:
        raise ForbiddenError(
            "Agency privileges required",
            details={"required_privilege": "super"}
        )
    """

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class PersistenceFailed(AppException):
    """Raised when the record store rejects a write.

    Example:
        raise PersistenceFailed("Failed to save changes", details={"record_id": rid})
    """

    message = "Failed to save changes"
    error_code = "persistence_failed"
    status_code = 503


class GenerationFailed(AppException):
    """Raised when the AI captioning collaborator fails.

    Example:
        raise GenerationFailed("Quota exceeded")
    """

    message = "Caption generation failed"
    error_code = "generation_failed"
    status_code = 502


class SchedulingFailed(AppException):
    """Raised when the scheduling collaborator rejects or fails a request.

    Example:
        raise SchedulingFailed("Instagram posts require media content")
    """

    message = "Scheduling failed"
    error_code = "scheduling_failed"
    status_code = 502


class ServiceUnavailableError(AppException):
    """Raised when a required collaborator is not configured or reachable.

    Example:
        raise ServiceUnavailableError("Scheduling API key not configured")
    """

    message = "Service temporarily unavailable"
    error_code = "service_unavailable"
    status_code = 503
