"""Pydantic schemas for desk sessions."""

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from contentdesk.core.auth.gate import Privilege
from contentdesk.core.constants import MAX_SECRET_LENGTH
from contentdesk.core.database.base import utcnow
from contentdesk.modules.tenants.schemas import TenantResponse


class NoticeKind(StrEnum):
    """Failures reported to a session after its request returned."""

    PERSISTENCE_FAILED = "persistence_failed"
    SCHEDULING_FAILED = "scheduling_failed"
    GENERATION_FAILED = "generation_failed"
    RELOAD_FAILED = "reload_failed"


class Notice(BaseModel):
    """A failure waiting to be shown to the session's user."""

    kind: NoticeKind
    message: str
    record_id: str | None = None
    field: str | None = None
    at: datetime = Field(default_factory=utcnow)
    problem: dict[str, Any] = {}


class NoticeListResponse(BaseModel):
    """Notices drained from a session, oldest first."""

    items: list[Notice]


class SessionOpen(BaseModel):
    """Schema for starting a session with a shared secret."""

    secret: str = Field(..., min_length=1, max_length=MAX_SECRET_LENGTH)


class ScopeSelect(BaseModel):
    """Schema for choosing which tenant an agency session looks at."""

    tenant_id: UUID | None = None


class SessionResponse(BaseModel):
    """A session as returned to its owner."""

    session_id: str
    tenant: TenantResponse
    privilege: Privilege
    scope_tenant_id: UUID | None
    tenants: list[TenantResponse]
    record_count: int


class SessionClosed(BaseModel):
    """Result of ending a session."""

    flushed: int
