"""Tenant API routes.

Everything here is for agency sessions only.
"""

from datetime import date
from uuid import UUID

from fastapi import Query, Request, status

from contentdesk.core.errors import ServiceUnavailableError
from contentdesk.core.jobs import enqueue
from contentdesk.modules.sessions.dependencies import AgencySession
from contentdesk.modules.tenants import router
from contentdesk.modules.tenants.schemas import (
    AgencyNotesUpdate,
    AgencyTenantResponse,
    IntegrationsUpdate,
    NotifyJobResponse,
    SchedulingProfilesResponse,
    TenantOverviewResponse,
)
from contentdesk.modules.tenants.services import TenantSvc, local_today


@router.get(
    "",
    response_model=TenantOverviewResponse,
    summary="Client overview",
    description="Every client with the state of its posts for one week.",
)
async def list_tenants(
    desk: AgencySession,  # noqa: ARG001 - required for auth
    service: TenantSvc,
    week_of: date | None = Query(None, description="Any date in the week to show"),
) -> TenantOverviewResponse:
    """Summarize every client for a week."""
    return await service.overview(today=local_today(), week_of=week_of)


@router.get(
    "/profiles",
    response_model=SchedulingProfilesResponse,
    summary="Connected scheduling accounts",
    description="Accounts connected to the scheduling service, to assign to clients.",
)
async def list_profiles(
    request: Request,
    desk: AgencySession,  # noqa: ARG001 - required for auth
) -> SchedulingProfilesResponse:
    """List the scheduling service's connected accounts."""
    profiles = await request.app.state.scheduler.list_profiles()
    return SchedulingProfilesResponse(profiles=profiles)


@router.post(
    "/notes/notify",
    response_model=NotifyJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send the notes digest now",
)
async def notify_notes(
    desk: AgencySession,  # noqa: ARG001 - required for auth
) -> NotifyJobResponse:
    """Enqueue the client-notes notifier."""
    try:
        job = await enqueue("notify_client_notes")
    except RuntimeError as e:
        raise ServiceUnavailableError("Background jobs are not available") from e
    return NotifyJobResponse(job_id=job.job_id if job is not None else None)


@router.put(
    "/{tenant_id}/agency-notes",
    response_model=AgencyTenantResponse,
    summary="Set agency notes",
)
async def set_agency_notes(
    tenant_id: UUID,
    data: AgencyNotesUpdate,
    desk: AgencySession,  # noqa: ARG001 - required for auth
    service: TenantSvc,
) -> AgencyTenantResponse:
    """Replace a client's agency-only notes."""
    return await service.set_agency_notes(tenant_id, data.agency_notes)


@router.put(
    "/{tenant_id}/integrations",
    response_model=AgencyTenantResponse,
    summary="Set publishing accounts",
    description="Accounts an approved post of this client is scheduled on.",
)
async def set_integrations(
    tenant_id: UUID,
    data: IntegrationsUpdate,
    desk: AgencySession,  # noqa: ARG001 - required for auth
    service: TenantSvc,
) -> AgencyTenantResponse:
    """Replace a client's integration accounts."""
    return await service.set_integrations(tenant_id, data.integration_accounts)
