"""Session-start gate: shared secret to tenant scope.

There are no tokens and no expiry. A secret either names exactly one
tenant or fails; the agency tenant's secret grants every tenant.
"""

from dataclasses import dataclass
from enum import StrEnum

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentdesk.core.database.tenant import TenantScope
from contentdesk.core.errors import AuthenticationFailed, PersistenceFailed
from contentdesk.modules.tenants.repos import TenantRepository
from contentdesk.modules.tenants.schemas import AgencyTenantResponse


logger = structlog.get_logger()


class Privilege(StrEnum):
    """What a session may do beyond reading and editing records in scope."""

    REGULAR = "regular"
    SUPER = "super"


@dataclass(frozen=True)
class SessionGrant:
    """Result of a successful secret lookup.

    Attributes:
        tenant: The tenant whose secret was entered
        scope: Tenants the session starts with in view
        privilege: Regular, or super for the agency tenant
    """

    tenant: AgencyTenantResponse
    scope: TenantScope
    privilege: Privilege

    @property
    def is_super(self) -> bool:
        return self.privilege is Privilege.SUPER


class TenantGate:
    """Resolves shared secrets to session grants."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def resolve(self, secret: str) -> SessionGrant:
        """Look up the tenant whose secret equals ``secret`` exactly.

        Args:
            secret: Secret as typed, not trimmed or case folded

        Returns:
            Grant scoped to that tenant, or to every tenant for the agency

        Raises:
            AuthenticationFailed: If no tenant has this secret
            PersistenceFailed: If the tenant table cannot be read
        """
        if not secret:
            raise AuthenticationFailed()

        try:
            async with self._session_factory() as session:
                tenant = await TenantRepository(session).get_by_secret(secret)
                found = AgencyTenantResponse.model_validate(tenant) if tenant else None
        except SQLAlchemyError as e:
            logger.error("tenant_lookup_failed", error=str(e))
            raise PersistenceFailed("Failed to check access code") from e

        if found is None:
            logger.info("authentication_failed")
            raise AuthenticationFailed()

        if found.is_super:
            grant = SessionGrant(
                tenant=found,
                scope=TenantScope.everything(),
                privilege=Privilege.SUPER,
            )
        else:
            grant = SessionGrant(
                tenant=found,
                scope=TenantScope.single(found.id),
                privilege=Privilege.REGULAR,
            )

        logger.info(
            "tenant_resolved",
            tenant_id=str(found.id),
            privilege=grant.privilege.value,
        )
        return grant
