"""Integration tests for the session registry."""

import asyncio
import time

import pytest

from contentdesk.core.auth import TenantGate
from contentdesk.core.errors import AuthenticationFailed, UnauthorizedError
from contentdesk.modules.records.store import RecordStore
from contentdesk.modules.sessions.registry import SessionRegistry
from contentdesk.modules.tenants.models import Tenant


pytestmark = pytest.mark.integration


@pytest.fixture
async def registry(session_factory, store: RecordStore, tenants, publisher, captioner):
    registry = SessionRegistry(
        gate=TenantGate(session_factory),
        store=store,
        tenants=tenants,
        publisher=publisher,
        captioner=captioner,
        quiet_period=0.05,
        max_media_bytes=1024,
    )
    yield registry
    await registry.close_all()


class TestSessionRegistry:
    async def test_open_registers_session(self, registry: SessionRegistry, client_tenant: Tenant):
        desk = await registry.open("5678")

        assert len(registry) == 1
        assert await registry.get(desk.id) is desk
        assert desk.grant.tenant.id == client_tenant.id
        assert desk.live_view.is_subscribed

    async def test_session_ids_are_unique(self, registry: SessionRegistry, client_tenant: Tenant):
        first = await registry.open("5678")
        second = await registry.open("5678")

        assert first.id != second.id
        assert len(registry) == 2

    async def test_wrong_secret_opens_nothing(self, registry: SessionRegistry, client_tenant: Tenant):
        with pytest.raises(AuthenticationFailed):
            await registry.open("0000")

        assert len(registry) == 0

    @pytest.mark.parametrize("session_id", [None, "", "not-a-session"])
    async def test_unknown_session(self, registry: SessionRegistry, session_id):
        with pytest.raises(UnauthorizedError) as exc_info:
            await registry.get(session_id)

        assert exc_info.value.error_code == "invalid_session"
        assert registry.find("not-a-session") is None

    async def test_close_flushes_and_forgets(
        self,
        registry: SessionRegistry,
        store: RecordStore,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        desk = await registry.open("5678")
        desk.apply_edit(record.id, "notes", "Please use the blue mug")

        settled = await registry.close(desk.id)

        assert settled == 1
        assert registry.find(desk.id) is None
        assert (await store.get(record.id)).notes == "Please use the blue mug"
        assert await registry.close(desk.id) == 0

    async def test_close_without_flush_drops_edits(
        self,
        registry: SessionRegistry,
        store: RecordStore,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        desk = await registry.open("5678")
        desk.apply_edit(record.id, "caption", "never saved")

        await registry.close(desk.id, flush=False)

        assert (await store.get(record.id)).caption == ""

    async def test_close_all(self, registry: SessionRegistry, client_tenant: Tenant, agency_tenant: Tenant):
        desks = [await registry.open("5678"), await registry.open("1991")]

        await registry.close_all()

        assert len(registry) == 0
        assert not any(desk.live_view.is_subscribed for desk in desks)


class TestIdleSessions:
    """Tests for suspending sessions nobody is using."""

    async def test_recent_sessions_are_kept(self, registry: SessionRegistry, client_tenant: Tenant):
        desk = await registry.open("5678")

        assert await registry.release_idle() == 0
        assert desk.live_view.is_subscribed

    async def test_idle_session_is_released_then_resumed(
        self,
        registry: SessionRegistry,
        store: RecordStore,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        desk = await registry.open("5678")
        desk.apply_edit(record.id, "caption", "Written before release")
        later = time.monotonic() + registry.idle_seconds + 1

        assert await registry.release_idle(now=later) == 1

        assert desk.is_suspended
        assert not desk.live_view.is_subscribed
        assert store.feed.subscriber_count == 0
        assert (await store.get(record.id)).caption == "Written before release"
        assert len(registry) == 1
        assert await registry.release_idle(now=later) == 0

        missed = await add_record(client_tenant)
        assert missed.id not in {r.id for r in desk.records}

        resumed = await registry.get(desk.id)

        assert resumed is desk
        assert not desk.is_suspended
        assert desk.live_view.is_subscribed
        assert desk.grant.tenant.id == client_tenant.id
        assert missed.id in {r.id for r in desk.records}

    async def test_suspended_session_can_still_be_closed(
        self,
        registry: SessionRegistry,
        client_tenant: Tenant,
    ):
        desk = await registry.open("5678")
        await registry.release_idle(now=time.monotonic() + registry.idle_seconds + 1)

        await registry.close(desk.id)

        assert registry.find(desk.id) is None
        with pytest.raises(UnauthorizedError):
            await registry.get(desk.id)

    async def test_sweeper_releases_in_background(
        self,
        registry: SessionRegistry,
        client_tenant: Tenant,
    ):
        registry.idle_seconds = 0
        desk = await registry.open("5678")

        registry.start_sweeping(interval=0.01)
        for _ in range(50):
            if desk.is_suspended:
                break
            await asyncio.sleep(0.01)
        await registry.stop_sweeping()

        assert desk.is_suspended
