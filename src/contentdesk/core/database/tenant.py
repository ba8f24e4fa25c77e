"""Tenant scoping for queries.

Isolation between tenants is enforced here, in application code: every
read of tenant-owned rows goes through a ``TenantScope`` filter.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import Select


class TenantContextRequired(Exception):
    """Raised when tenant context is required but not provided."""

    def __init__(self, message: str = "Tenant context is required for this operation"):
        self.message = message
        super().__init__(self.message)


@dataclass(frozen=True)
class TenantScope:
    """The set of tenants a session may read and write.

    A regular scope names exactly one tenant. A super scope either names one
    tenant (after the agency picked a client) or none, meaning every tenant.

    Attributes:
        tenant_id: The tenant in view, or None for all tenants
        is_super: Whether the scope was granted by the super-tenant secret
    """

    tenant_id: UUID | None
    is_super: bool = False

    def __post_init__(self) -> None:
        if self.tenant_id is None and not self.is_super:
            raise TenantContextRequired()

    @property
    def is_aggregate(self) -> bool:
        """True when every tenant is in view."""
        return self.tenant_id is None

    def allows(self, tenant_id: UUID) -> bool:
        """Check whether a row owned by ``tenant_id`` is visible."""
        return self.is_aggregate or tenant_id == self.tenant_id

    def apply(self, statement: Select[Any], model: Any) -> Select[Any]:
        """Apply the tenant_id filter to a select statement."""
        if self.is_aggregate or not hasattr(model, "tenant_id"):
            return statement
        return statement.where(model.tenant_id == self.tenant_id)

    @classmethod
    def single(cls, tenant_id: UUID) -> "TenantScope":
        """Scope limited to one tenant with regular privileges."""
        return cls(tenant_id=tenant_id, is_super=False)

    @classmethod
    def everything(cls) -> "TenantScope":
        """Aggregate scope across every tenant."""
        return cls(tenant_id=None, is_super=True)
