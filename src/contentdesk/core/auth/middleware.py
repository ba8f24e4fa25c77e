"""Request tracing and session context middleware.

This module provides middleware for:
- Binding the desk session and its tenant scope to the log context
- Request tracing with unique IDs
"""

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from contentdesk.core.constants import SESSION_HEADER


if TYPE_CHECKING:
    from starlette.types import ASGIApp


logger = structlog.get_logger()


class SessionContextMiddleware(BaseHTTPMiddleware):
    """Middleware that exposes the calling desk session to logging.

    Looks the ``X-Session-ID`` header up in the session registry on
    ``app.state.sessions``. Unknown ids are left alone; the route
    dependency rejects them.

    Attributes:
        exclude_paths: Paths that never carry a session
    """

    def __init__(
        self,
        app: "ASGIApp",
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or [
            "/health",
            "/docs",
            "/redoc",
            "/openapi.json",
        ]

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and bind session context.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            The response from the handler
        """
        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        session_id = request.headers.get(SESSION_HEADER)
        registry = getattr(request.app.state, "sessions", None)
        desk = registry.find(session_id) if registry is not None and session_id else None

        if desk is not None:
            request.state.session_id = desk.id
            request.state.tenant_id = desk.scope.tenant_id

            structlog.contextvars.bind_contextvars(
                session_id=desk.id[:8],
                tenant_id=str(desk.scope.tenant_id) if desk.scope.tenant_id else "all",
            )

        return await call_next(request)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware that adds a unique request ID to each request.

    The request ID is added to:
    - request.state.request_id
    - Response header X-Request-ID
    - Structlog context
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and add request ID.

        Args:
            request: The incoming request
            call_next: The next middleware/handler

        Returns:
            The response with X-Request-ID header
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        request.state.request_id = request_id
        request.state.trace_id = request_id  # Alias for error handler

        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        structlog.contextvars.unbind_contextvars("request_id", "session_id", "tenant_id")

        return response
