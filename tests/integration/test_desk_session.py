"""Integration tests for desk sessions: edits, approval and auto-publish."""

import base64
import json
from datetime import date
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from contentdesk.core.auth import TenantGate
from contentdesk.core.errors import ForbiddenError, ValidationFailed
from contentdesk.modules.records.models import Record
from contentdesk.modules.records.status import RecordStatus
from contentdesk.modules.records.store import RecordStore
from contentdesk.modules.sessions.schemas import NoticeKind
from contentdesk.modules.sessions.session import DeskSession
from contentdesk.modules.tenants.models import Tenant
from contentdesk.modules.tenants.services import TenantDirectory
from tests.factories.record import RecordCreateFactory


pytestmark = pytest.mark.integration

QUIET = 0.05
INSTAGRAM = [{"platform": "instagram", "account_id": "ig-1"}]
PHOTO = "https://cdn.example.com/photo.jpg"


@pytest.fixture
async def open_desk(
    session_factory,
    store: RecordStore,
    tenants: TenantDirectory,
    publisher,
    captioner,
):
    """Open a desk session for a secret, closed again after the test."""
    desks: list[DeskSession] = []

    async def _open(secret: str, **kwargs: Any) -> DeskSession:
        grant = await TenantGate(session_factory).resolve(secret)
        desk = DeskSession(
            f"session-{len(desks)}",
            grant,
            store,
            tenants,
            publisher,
            captioner=kwargs.pop("captioner", captioner),
            quiet_period=QUIET,
            max_media_bytes=kwargs.pop("max_media_bytes", 1024),
        )
        await desk.open()
        desks.append(desk)
        return desk

    yield _open

    for desk in desks:
        await desk.close()


class TestEditing:
    async def test_edit_shows_now_and_stores_later(
        self,
        open_desk,
        store: RecordStore,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        desk = await open_desk("5678")

        shown = desk.apply_edit(record.id, "caption", "Hello")

        assert shown.caption == "Hello"
        assert (await store.get(record.id)).caption == ""

        await desk.queue.flush()
        assert (await store.get(record.id)).caption == "Hello"

    async def test_invalid_edit_is_rejected_without_write(
        self,
        open_desk,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        desk = await open_desk("5678")
        big_image = "data:image/png;base64," + base64.b64encode(b"x" * 4096).decode()

        with pytest.raises(ValidationFailed):
            desk.apply_edit(record.id, "media_url", big_image)

        assert desk.queue.pending_count == 0
        assert desk.view.get(record.id).media_url is None

    async def test_other_session_sees_edit_after_write(
        self,
        open_desk,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        client_desk = await open_desk("5678")
        agency_desk = await open_desk("1991")

        client_desk.apply_edit(record.id, "notes", "Swap the photo please")
        assert agency_desk.view.get(record.id).notes == ""

        await client_desk.queue.flush()

        assert agency_desk.view.get(record.id).notes == "Swap the photo please"

    async def test_reload_from_other_write_keeps_pending_edit(
        self,
        open_desk,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        client_desk = await open_desk("5678")
        agency_desk = await open_desk("1991")

        client_desk.apply_edit(record.id, "caption", "still typing")
        agency_desk.apply_edit(record.id, "title", "Launch day")
        await agency_desk.queue.flush()

        shown = client_desk.view.get(record.id)
        assert shown.title == "Launch day"
        assert shown.caption == "still typing"

    async def test_failed_write_reports_and_reloads(
        self,
        open_desk,
        client_tenant: Tenant,
        add_record,
        db: AsyncSession,
    ):
        record = await add_record(client_tenant)
        other = await add_record(client_tenant)
        desk = await open_desk("5678")

        # Removed behind the session's back: no change event
        await db.delete(await db.get(Record, record.id))
        await db.commit()

        desk.apply_edit(record.id, "caption", "lost")
        desk.apply_edit(other.id, "caption", "written")
        await desk.queue.flush()

        notices = desk.drain_notices()
        assert [n.kind for n in notices] == [NoticeKind.PERSISTENCE_FAILED]
        assert notices[0].record_id == record.id
        assert notices[0].problem["status"] == 503
        assert record.id not in desk.view
        assert desk.drain_notices() == []

    async def test_close_flushes_pending_edits(
        self,
        open_desk,
        store: RecordStore,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        desk = await open_desk("5678")
        desk.apply_edit(record.id, "caption", "saved on close")

        settled = await desk.close()

        assert settled == 1
        assert (await store.get(record.id)).caption == "saved on close"
        assert not desk.live_view.is_subscribed


class TestAutoPublish:
    """Approval of a record triggers one publish attempt."""

    async def test_approval_without_accounts_stays_approved(
        self,
        open_desk,
        store: RecordStore,
        client_tenant: Tenant,
        add_record,
        scheduling_recorder,
    ):
        record = await add_record(client_tenant, status=RecordStatus.FOR_APPROVAL)
        desk = await open_desk("5678")

        desk.apply_edit(record.id, "status", "Approved")
        await desk.queue.flush()

        assert (await store.get(record.id)).status is RecordStatus.APPROVED
        assert scheduling_recorder.requests == []
        assert desk.drain_notices() == []

    async def test_approval_with_media_required_and_no_media_stays_approved(
        self,
        open_desk,
        store: RecordStore,
        add_tenant,
        add_record,
        scheduling_recorder,
    ):
        tenant = await add_tenant(secret="2468", integration_accounts=INSTAGRAM)
        record = await add_record(
            tenant,
            status=RecordStatus.FOR_APPROVAL,
            caption="Hello",
            hashtags=["sun", "fun"],
        )
        desk = await open_desk("2468")

        desk.apply_edit(record.id, "status", "Approved")
        await desk.queue.flush()

        assert (await store.get(record.id)).status is RecordStatus.APPROVED
        assert scheduling_recorder.requests == []

    async def test_approval_publishes_once_and_marks_posted(
        self,
        open_desk,
        store: RecordStore,
        add_tenant,
        add_record,
        scheduling_recorder,
    ):
        tenant = await add_tenant(secret="2468", integration_accounts=INSTAGRAM)
        record = await add_record(
            tenant,
            status=RecordStatus.FOR_APPROVAL,
            caption="Hello",
            hashtags=["sun", "fun"],
            media_url=PHOTO,
        )
        desk = await open_desk("2468")

        desk.apply_edit(record.id, "status", "Approved")
        desk.apply_edit(record.id, "status", "Approved")
        await desk.queue.flush()

        assert len(scheduling_recorder.requests) == 1
        payload = json.loads(scheduling_recorder.requests[0].content)
        assert payload["content"] == "Hello #sun #fun"
        assert payload["mediaItems"] == [{"type": "image", "url": PHOTO}]
        assert (await store.get(record.id)).status is RecordStatus.POSTED
        assert desk.view.get(record.id).status is RecordStatus.POSTED

    async def test_scheduling_failure_becomes_notice(
        self,
        open_desk,
        store: RecordStore,
        add_tenant,
        add_record,
        scheduling_recorder,
    ):
        scheduling_recorder.status_code = 401
        scheduling_recorder.body = {"message": "Invalid API key"}
        tenant = await add_tenant(secret="2468", integration_accounts=INSTAGRAM)
        record = await add_record(tenant, status=RecordStatus.FOR_APPROVAL, media_url=PHOTO)
        desk = await open_desk("2468")

        desk.apply_edit(record.id, "status", "Approved")
        await desk.queue.flush()

        notices = desk.drain_notices()
        assert [n.kind for n in notices] == [NoticeKind.SCHEDULING_FAILED]
        assert notices[0].message == "Invalid API key"
        assert (await store.get(record.id)).status is RecordStatus.APPROVED

    async def test_approve_all_mixed_outcomes(
        self,
        open_desk,
        store: RecordStore,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        other_tenant: Tenant,
        add_tenant,
        add_record,
        scheduling_recorder,
    ):
        """Three records, one publishable: one external call, none left behind."""
        publishing = await add_tenant(secret="2468", integration_accounts=INSTAGRAM)
        quiet_a = await add_record(client_tenant, status=RecordStatus.DRAFT)
        quiet_b = await add_record(other_tenant, status=RecordStatus.FOR_APPROVAL)
        loud = await add_record(publishing, status=RecordStatus.FOR_APPROVAL, media_url=PHOTO)
        desk = await open_desk("1991")

        approved = desk.approve_all()
        await desk.queue.flush()

        assert set(approved) == {quiet_a.id, quiet_b.id, loud.id}
        assert len(scheduling_recorder.requests) == 1
        assert (await store.get(quiet_a.id)).status is RecordStatus.APPROVED
        assert (await store.get(quiet_b.id)).status is RecordStatus.APPROVED
        assert (await store.get(loud.id)).status is RecordStatus.POSTED

    async def test_approve_all_skips_posted_and_respects_window(
        self,
        open_desk,
        client_tenant: Tenant,
        add_record,
    ):
        posted = await add_record(client_tenant, status=RecordStatus.POSTED)
        inside = await add_record(client_tenant, date=date(2026, 10, 20))
        outside = await add_record(client_tenant, date=date(2026, 11, 20))
        desk = await open_desk("5678")

        approved = desk.approve_all(date(2026, 10, 19), date(2026, 10, 25))

        assert approved == [inside.id]
        assert desk.view.get(posted.id).status is RecordStatus.POSTED
        assert desk.view.get(outside.id).status is RecordStatus.DRAFT


class TestAgencyOperations:
    async def test_client_cannot_create_or_delete(
        self,
        open_desk,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        desk = await open_desk("5678")

        with pytest.raises(ForbiddenError):
            await desk.create_record(RecordCreateFactory.build())
        with pytest.raises(ForbiddenError):
            await desk.delete_record(record.id)
        with pytest.raises(ForbiddenError):
            await desk.select_scope(None)

    async def test_create_requires_tenant_when_viewing_all(
        self,
        open_desk,
        agency_tenant: Tenant,
        client_tenant: Tenant,
    ):
        desk = await open_desk("1991")

        with pytest.raises(ValidationFailed):
            await desk.create_record(RecordCreateFactory.build())

        record = await desk.create_record(RecordCreateFactory.build(tenant_id=client_tenant.id))
        assert record.id in desk.view
        assert record.tenant_id == client_tenant.id

    async def test_scoped_agency_creates_for_selected_client(
        self,
        open_desk,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        other_tenant: Tenant,
        add_record,
    ):
        theirs = await add_record(other_tenant)
        desk = await open_desk("1991")

        await desk.select_scope(client_tenant.id)
        assert theirs.id not in desk.view

        record = await desk.create_record(RecordCreateFactory.build())
        assert record.tenant_id == client_tenant.id

        with pytest.raises(ValidationFailed):
            await desk.create_record(RecordCreateFactory.build(tenant_id=other_tenant.id))

    async def test_delete_discards_pending_edits(
        self,
        open_desk,
        store: RecordStore,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        desk = await open_desk("1991")
        desk.apply_edit(record.id, "caption", "never written")

        await desk.delete_record(record.id)
        await desk.queue.flush()

        assert record.id not in desk.view
        assert desk.drain_notices() == []


class TestCaptions:
    async def test_generate_caption_applies_through_queue(
        self,
        open_desk,
        store: RecordStore,
        client_tenant: Tenant,
        add_record,
        genai_client,
    ):
        image = "data:image/png;base64," + base64.b64encode(b"png").decode()
        record = await add_record(client_tenant, media_url=image)
        desk = await open_desk("5678")

        shown = await desk.generate_caption(record.id, guidelines="Mention mugs")

        assert "—" not in shown.caption
        assert shown.hashtags == ["coffee", "ceramics"]
        genai_client.models.generate_content.assert_called_once()

        await desk.queue.flush()
        stored = await store.get(record.id)
        assert stored.caption == shown.caption
        assert stored.hashtags == ["coffee", "ceramics"]

    async def test_video_cannot_be_captioned(
        self,
        open_desk,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(
            client_tenant,
            media_url="https://cdn.example.com/clip.mp4",
            media_kind="video",
        )
        desk = await open_desk("5678")

        with pytest.raises(ValidationFailed):
            await desk.generate_caption(record.id)

    async def test_missing_image(self, open_desk, client_tenant: Tenant, add_record):
        record = await add_record(client_tenant)
        desk = await open_desk("5678")

        with pytest.raises(ValidationFailed):
            await desk.generate_caption(record.id)


IDEAS = {
    "posts": [
        {"caption": "Fresh glaze — fresh week", "hashtags": ["#glaze", "studio"]},
        {"caption": "Meet the kiln", "hashtags": ["kiln"]},
        {"caption": "", "hashtags": ["empty"]},
        {"caption": "Market day", "hashtags": []},
    ]
}


class TestGeneration:
    """Tests for creating Draft records from generated post ideas."""

    async def test_agency_generates_drafts_on_consecutive_dates(
        self,
        open_desk,
        store: RecordStore,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        genai_client,
    ):
        genai_client.models.generate_content.return_value.text = json.dumps(IDEAS)
        desk = await open_desk("1991")
        start = date(2026, 10, 19)

        records = await desk.generate_records(client_tenant.id, 3, start, guidelines="Autumn")

        assert [r.title for r in records] == ["Post 1", "Post 2", "Post 3"]
        assert [r.date for r in records] == [
            date(2026, 10, 19),
            date(2026, 10, 20),
            date(2026, 10, 21),
        ]
        assert [r.caption for r in records] == [
            "Fresh glaze ,  fresh week",
            "Meet the kiln",
            "Market day",
        ]
        assert records[0].hashtags == ["glaze", "studio"]
        assert all(r.status is RecordStatus.DRAFT for r in records)
        assert all(r.tenant_id == client_tenant.id for r in records)
        assert all(r.id in desk.view for r in records)
        for record in records:
            assert (await store.get(record.id)).caption == record.caption

        kwargs = genai_client.models.generate_content.call_args.kwargs
        assert "Light Dust" in kwargs["config"].system_instruction
        assert "Autumn" in kwargs["contents"][0]

    async def test_spacing_between_dates(
        self,
        open_desk,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        genai_client,
    ):
        genai_client.models.generate_content.return_value.text = json.dumps(IDEAS)
        desk = await open_desk("1991")
        await desk.select_scope(client_tenant.id)

        records = await desk.generate_records(None, 2, date(2026, 10, 19), every_days=7)

        assert [r.date for r in records] == [date(2026, 10, 19), date(2026, 10, 26)]
        assert all(r.tenant_id == client_tenant.id for r in records)

    async def test_client_session_cannot_generate(
        self,
        open_desk,
        client_tenant: Tenant,
        genai_client,
    ):
        desk = await open_desk("5678")

        with pytest.raises(ForbiddenError):
            await desk.generate_records(client_tenant.id, 3, date(2026, 10, 19))

        genai_client.models.generate_content.assert_not_called()

    async def test_tenant_outside_scope_is_rejected(
        self,
        open_desk,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        other_tenant: Tenant,
        genai_client,
    ):
        desk = await open_desk("1991")
        await desk.select_scope(client_tenant.id)

        with pytest.raises(ValidationFailed):
            await desk.generate_records(other_tenant.id, 3, date(2026, 10, 19))

        with pytest.raises(ValidationFailed):
            await (await open_desk("1991")).generate_records(None, 3, date(2026, 10, 19))

        genai_client.models.generate_content.assert_not_called()
