#!/usr/bin/env python
"""
Generate demo/seed data for development.
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from uuid import uuid4

from sqlalchemy import select


# Add src to path for imports
sys.path.insert(0, "src")

from contentdesk.core.database import async_session_factory
from contentdesk.modules.records.models import Record
from contentdesk.modules.records.status import RecordStatus
from contentdesk.modules.tenants.models import Tenant
from contentdesk.modules.tenants.services import local_today, week_bounds


AGENCY = {
    "name": "Seam Media",
    "secret": "1991",
    "is_super": True,
    "brand_name": "Seam Media",
}

CLIENTS = [
    {
        "name": "Light Dust",
        "secret": "5678",
        "brand_name": "Light Dust",
        "brand_mission": "Handmade ceramics for slow mornings",
        "brand_tone": "Warm, unhurried, a little playful",
        "brand_keywords": ["ceramics", "handmade", "coffee"],
    },
]


async def _ensure_tenant(session, data: dict) -> Tenant:
    result = await session.execute(select(Tenant).where(Tenant.secret == data["secret"]))
    existing = result.scalar_one_or_none()

    if existing:
        print(f"Tenant already exists: {existing.name}")
        return existing

    tenant = Tenant(id=uuid4(), **data)
    session.add(tenant)
    await session.flush()
    print(f"Created tenant: {tenant.name} (secret {tenant.secret})")
    return tenant


async def seed_default() -> None:
    """Create the agency tenant and one client."""
    async with async_session_factory() as session:
        await _ensure_tenant(session, AGENCY)
        for data in CLIENTS:
            await _ensure_tenant(session, data)
        await session.commit()


async def seed_demo() -> None:
    """Create the default tenants plus a week of draft posts per client."""
    await seed_default()

    start, _ = week_bounds(local_today())
    async with async_session_factory() as session:
        for data in CLIENTS:
            result = await session.execute(select(Tenant).where(Tenant.secret == data["secret"]))
            tenant = result.scalar_one()

            existing = await session.execute(select(Record.id).where(Record.tenant_id == tenant.id))
            if existing.first():
                print(f"Posts already exist for: {tenant.name}")
                continue

            for offset in range(7):
                session.add(
                    Record(
                        id=uuid4().hex,
                        tenant_id=tenant.id,
                        title=f"Post {offset + 1}",
                        date=start + timedelta(days=offset),
                        status=RecordStatus.DRAFT.value,
                        hashtags=[],
                    )
                )
            print(f"Created 7 draft posts for: {tenant.name}")

        await session.commit()


async def main(scenario: str) -> None:
    """Run the seeding based on scenario."""
    if scenario == "default":
        await seed_default()
    elif scenario == "demo":
        await seed_demo()
    else:
        print(f"Unknown scenario: {scenario}")
        print("Available scenarios: default, demo")
        sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed database with demo data")
    parser.add_argument(
        "--scenario",
        "-s",
        default="default",
        help="Seed scenario to run (default, demo)",
    )
    args = parser.parse_args()

    asyncio.run(main(args.scenario))
