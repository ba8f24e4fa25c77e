"""Tenant services: directory lookups, agency overview and settings."""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Annotated
from uuid import UUID
from zoneinfo import ZoneInfo

import structlog
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentdesk.api.dependencies import DBSession
from contentdesk.config import settings
from contentdesk.core.database.tenant import TenantScope
from contentdesk.core.errors import NotFoundError, PersistenceFailed
from contentdesk.modules.records.repos import RecordRepository
from contentdesk.modules.records.status import RecordStatus, summarize
from contentdesk.modules.tenants.models import Tenant
from contentdesk.modules.tenants.repos import TenantRepository
from contentdesk.modules.tenants.schemas import (
    AgencyTenantResponse,
    BrandContext,
    IntegrationAccount,
    StatusSummary,
    TenantOverview,
    TenantOverviewResponse,
)


logger = structlog.get_logger()


def local_today() -> date:
    """Today in the agency's publishing time zone."""
    return datetime.now(ZoneInfo(settings.publish_timezone)).date()


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def brand_context(tenant: AgencyTenantResponse) -> BrandContext:
    """Brand description of a tenant for the caption generator."""
    return BrandContext(
        name=tenant.brand_name or tenant.name,
        mission=tenant.brand_mission or "",
        tone=tenant.brand_tone or "",
        keywords=list(tenant.brand_keywords),
    )


class TenantDirectory:
    """Read-only tenant lookups for long-lived desk sessions.

    Each call opens its own database session and returns detached schema
    objects, so callers never hold ORM state across awaits.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, tenant_id: UUID) -> AgencyTenantResponse:
        """Look up one tenant.

        Raises:
            NotFoundError: If the tenant does not exist
            PersistenceFailed: If the store cannot be read
        """
        try:
            async with self._session_factory() as session:
                tenant = await TenantRepository(session).get_by_id(tenant_id)
                found = AgencyTenantResponse.model_validate(tenant) if tenant else None
        except SQLAlchemyError as e:
            raise PersistenceFailed("Failed to load tenant") from e
        if found is None:
            raise NotFoundError("Tenant not found", resource="tenant", resource_id=str(tenant_id))
        return found

    async def list_visible(self, scope: TenantScope) -> list[AgencyTenantResponse]:
        """Tenants a scope may see, agency tenant first."""
        try:
            async with self._session_factory() as session:
                tenants = await TenantRepository(session).list_all()
                return [
                    AgencyTenantResponse.model_validate(t)
                    for t in tenants
                    if scope.is_super or t.id == scope.tenant_id
                ]
        except SQLAlchemyError as e:
            raise PersistenceFailed("Failed to load tenants") from e


class TenantService:
    """Agency-side tenant operations within one request.

    Args:
        repo: Tenant repository bound to the request's database session
        records: Record repository bound to the same session
    """

    def __init__(self, repo: TenantRepository, records: RecordRepository) -> None:
        self.repo = repo
        self.records = records

    async def _get_or_404(self, tenant_id: UUID) -> Tenant:
        tenant = await self.repo.get_by_id(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found", resource="tenant", resource_id=str(tenant_id))
        return tenant

    async def overview(self, today: date, week_of: date | None = None) -> TenantOverviewResponse:
        """Status summary of every client tenant for one week.

        Args:
            today: Reference date for overdue checks
            week_of: Any date in the week to summarize; defaults to ``today``

        Returns:
            One row per non-agency tenant, in name order
        """
        start, end = week_bounds(week_of or today)
        tenants = [t for t in await self.repo.list_all() if not t.is_super]
        records = await self.records.list_in_scope(TenantScope.everything(), start, end)

        by_tenant: dict[UUID, list[tuple[date, RecordStatus]]] = defaultdict(list)
        for record in records:
            by_tenant[record.tenant_id].append((record.date, RecordStatus(record.status)))

        items = []
        for tenant in tenants:
            pairs = by_tenant.get(tenant.id, [])
            kind = summarize(pairs, today)
            items.append(
                TenantOverview(
                    tenant=AgencyTenantResponse.model_validate(tenant),
                    summary=StatusSummary(
                        kind=kind.value,
                        label=kind.label,
                        record_count=len(pairs),
                    ),
                )
            )
        return TenantOverviewResponse(window_start=start, window_end=end, items=items)

    async def set_agency_notes(self, tenant_id: UUID, notes: str | None) -> AgencyTenantResponse:
        """Replace the agency-only notes on a tenant."""
        tenant = await self._get_or_404(tenant_id)
        tenant.agency_notes = notes
        tenant = await self.repo.update(tenant)
        logger.info("agency_notes_updated", tenant_id=str(tenant_id))
        return AgencyTenantResponse.model_validate(tenant)

    async def set_integrations(
        self,
        tenant_id: UUID,
        accounts: list[IntegrationAccount],
    ) -> AgencyTenantResponse:
        """Replace the accounts a tenant auto-publishes to."""
        tenant = await self._get_or_404(tenant_id)
        tenant.integration_accounts = [account.model_dump() for account in accounts]
        tenant = await self.repo.update(tenant)
        logger.info(
            "integrations_updated",
            tenant_id=str(tenant_id),
            platforms=[account.platform for account in accounts],
        )
        return AgencyTenantResponse.model_validate(tenant)


def get_tenant_service(db: DBSession) -> TenantService:
    """Dependency that provides a request-scoped tenant service."""
    return TenantService(TenantRepository(db), RecordRepository(db))


TenantSvc = Annotated[TenantService, Depends(get_tenant_service)]
