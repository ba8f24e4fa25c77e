"""Tenant repository for database operations."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from contentdesk.modules.tenants.models import Tenant


class TenantRepository:
    """Repository for Tenant database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, tenant: Tenant) -> Tenant:
        """Create a new tenant.

        Args:
            tenant: Tenant instance to create

        Returns:
            The created tenant with ID populated
        """
        self.session.add(tenant)
        await self.session.flush()
        await self.session.refresh(tenant)
        return tenant

    async def get_by_id(self, tenant_id: UUID) -> Tenant | None:
        """Get a tenant by ID.

        Args:
            tenant_id: The tenant's UUID

        Returns:
            Tenant if found, None otherwise
        """
        return await self.session.get(Tenant, tenant_id)

    async def get_by_secret(self, secret: str) -> Tenant | None:
        """Get the tenant whose shared secret equals ``secret`` exactly.

        No trimming or case folding is applied, and the comparison is
        repeated in Python so a collation that ignores case or trailing
        spaces can never widen the match.

        Args:
            secret: The submitted shared secret

        Returns:
            Tenant if exactly matched, None otherwise
        """
        stmt = select(Tenant).where(Tenant.secret == secret)
        result = await self.session.execute(stmt)
        tenant = result.scalar_one_or_none()
        if tenant is None or tenant.secret != secret:
            return None
        return tenant

    async def list_all(self) -> list[Tenant]:
        """List every tenant, agency tenant first, then by name."""
        stmt = select(Tenant).order_by(Tenant.is_super.desc(), Tenant.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, tenant: Tenant) -> Tenant:
        """Flush pending changes to a tenant.

        Args:
            tenant: Tenant instance with updated fields

        Returns:
            The updated tenant
        """
        await self.session.flush()
        await self.session.refresh(tenant)
        return tenant

    async def delete(self, tenant: Tenant) -> None:
        """Delete a tenant; its records go with it (ON DELETE CASCADE).

        Args:
            tenant: Tenant instance to delete
        """
        await self.session.delete(tenant)
        await self.session.flush()
