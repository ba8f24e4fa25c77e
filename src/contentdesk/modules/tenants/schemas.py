"""Pydantic schemas for tenant operations."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from contentdesk.integrations.scheduling import PlatformAccount, SchedulingProfile


# ============================================================
# Brand and Integration Configuration
# ============================================================


class BrandContext(BaseModel):
    """Brand description handed to the caption generator."""

    name: str
    mission: str = ""
    tone: str = ""
    keywords: list[str] = []


# Accounts are stored on the tenant in the scheduling service's terms.
IntegrationAccount = PlatformAccount


# ============================================================
# Tenant Schemas
# ============================================================


class TenantResponse(BaseModel):
    """Tenant data visible to any session that can see the tenant."""

    id: UUID
    name: str
    brand_name: str
    is_super: bool
    brand_mission: str | None = None
    brand_tone: str | None = None
    brand_keywords: list[str] = []
    integration_accounts: list[IntegrationAccount] = []

    model_config = ConfigDict(from_attributes=True)


class AgencyTenantResponse(TenantResponse):
    """Tenant data including the agency-only fields."""

    agency_notes: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None


class StatusSummary(BaseModel):
    """Aggregate approval state of a tenant's records in a date window."""

    kind: str
    label: str
    record_count: int


class TenantOverview(BaseModel):
    """One row of the agency's cross-tenant overview."""

    tenant: AgencyTenantResponse
    summary: StatusSummary


class TenantOverviewResponse(BaseModel):
    """Cross-tenant overview for agency sessions."""

    window_start: date
    window_end: date
    items: list[TenantOverview]


class AgencyNotesUpdate(BaseModel):
    """Schema for replacing a tenant's agency-only notes."""

    agency_notes: str | None = None


class IntegrationsUpdate(BaseModel):
    """Schema for replacing a tenant's integration accounts."""

    integration_accounts: list[IntegrationAccount]


class SchedulingProfilesResponse(BaseModel):
    """List of connected scheduling accounts."""

    profiles: list[SchedulingProfile]


class NotifyJobResponse(BaseModel):
    """Result of enqueueing the notes notifier."""

    job_id: str | None
