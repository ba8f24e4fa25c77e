"""FastAPI dependencies for desk sessions."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from contentdesk.core.constants import SESSION_HEADER
from contentdesk.modules.sessions.registry import SessionRegistry
from contentdesk.modules.sessions.session import DeskSession


session_header = APIKeyHeader(name=SESSION_HEADER, auto_error=False)


def get_registry(request: Request) -> SessionRegistry:
    """Session registry created by the application lifespan."""
    return request.app.state.sessions


Registry = Annotated[SessionRegistry, Depends(get_registry)]


async def get_current_session(
    registry: Registry,
    session_id: Annotated[str | None, Depends(session_header)],
) -> DeskSession:
    """Resolve the ``X-Session-ID`` header to a live session.

    Raises:
        UnauthorizedError: If the header is missing or names no session
    """
    return await registry.get(session_id)


async def get_agency_session(
    desk: Annotated[DeskSession, Depends(get_current_session)],
) -> DeskSession:
    """Like ``get_current_session`` but only for agency sessions.

    Raises:
        ForbiddenError: If the session is a regular client session
    """
    desk.require_super()
    return desk


CurrentSession = Annotated[DeskSession, Depends(get_current_session)]
AgencySession = Annotated[DeskSession, Depends(get_agency_session)]
