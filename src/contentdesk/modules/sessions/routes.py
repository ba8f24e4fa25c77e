"""Session API routes."""

from fastapi import status

from contentdesk.modules.sessions import router
from contentdesk.modules.sessions.dependencies import CurrentSession, Registry
from contentdesk.modules.sessions.schemas import (
    NoticeListResponse,
    ScopeSelect,
    SessionClosed,
    SessionOpen,
    SessionResponse,
)
from contentdesk.modules.sessions.session import DeskSession
from contentdesk.modules.tenants.schemas import TenantResponse


async def _describe(desk: DeskSession) -> SessionResponse:
    tenants = await desk.tenants.list_visible(desk.grant.scope)
    return SessionResponse(
        session_id=desk.id,
        tenant=TenantResponse.model_validate(desk.grant.tenant.model_dump()),
        privilege=desk.grant.privilege,
        scope_tenant_id=desk.scope.tenant_id,
        tenants=[TenantResponse.model_validate(t.model_dump()) for t in tenants],
        record_count=len(desk.view),
    )


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a session",
    description="Exchange a client access code for a session id. "
    "Send the id back in the X-Session-ID header.",
)
async def open_session(data: SessionOpen, registry: Registry) -> SessionResponse:
    """Start a desk session."""
    desk = await registry.open(data.secret)
    return await _describe(desk)


@router.get(
    "/current",
    response_model=SessionResponse,
    summary="Describe the current session",
)
async def get_session(desk: CurrentSession) -> SessionResponse:
    """Describe the calling session."""
    return await _describe(desk)


@router.delete(
    "/current",
    response_model=SessionClosed,
    summary="End the current session",
    description="Writes pending edits, then releases the live view.",
)
async def close_session(desk: CurrentSession, registry: Registry) -> SessionClosed:
    """End the calling session."""
    flushed = await registry.close(desk.id)
    return SessionClosed(flushed=flushed)


@router.put(
    "/current/scope",
    response_model=SessionResponse,
    summary="Choose the client in view",
    description="Agency sessions only. A null tenant_id shows every client.",
)
async def select_scope(data: ScopeSelect, desk: CurrentSession) -> SessionResponse:
    """Narrow or widen an agency session."""
    await desk.select_scope(data.tenant_id)
    return await _describe(desk)


@router.get(
    "/current/notices",
    response_model=NoticeListResponse,
    summary="Collect notices",
    description="Failures of background writes and auto-publishing since the last call.",
)
async def drain_notices(desk: CurrentSession) -> NoticeListResponse:
    """Drain the calling session's notices."""
    return NoticeListResponse(items=desk.drain_notices())
