"""Integration tests for session endpoints."""

import pytest
from httpx import AsyncClient

from contentdesk.modules.tenants.models import Tenant


pytestmark = pytest.mark.integration


class TestOpenSession:
    """Tests for POST /api/v1/sessions."""

    async def test_client_secret(self, client: AsyncClient, client_tenant: Tenant, other_tenant: Tenant):
        response = await client.post("/api/v1/sessions", json={"secret": "5678"})

        assert response.status_code == 201
        data = response.json()
        assert data["session_id"]
        assert data["tenant"]["name"] == "Light Dust"
        assert data["privilege"] == "regular"
        assert data["scope_tenant_id"] == str(client_tenant.id)
        assert [t["name"] for t in data["tenants"]] == ["Light Dust"]
        assert "secret" not in data["tenant"]

    async def test_agency_secret(
        self,
        client: AsyncClient,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        other_tenant: Tenant,
    ):
        response = await client.post("/api/v1/sessions", json={"secret": "1991"})

        assert response.status_code == 201
        data = response.json()
        assert data["privilege"] == "super"
        assert data["scope_tenant_id"] is None
        assert {t["name"] for t in data["tenants"]} == {"Seam Media", "Light Dust", "Harbour Bakes"}

    async def test_wrong_secret(self, client: AsyncClient, client_tenant: Tenant):
        response = await client.post("/api/v1/sessions", json={"secret": "0000"})

        assert response.status_code == 401
        data = response.json()
        assert data["status"] == 401
        assert data["type"].endswith("/authentication_failed")
        assert data["detail"] == "Incorrect access code"

    async def test_empty_secret_is_a_validation_error(self, client: AsyncClient):
        response = await client.post("/api/v1/sessions", json={"secret": ""})

        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "secret"


class TestCurrentSession:
    async def test_missing_header(self, client: AsyncClient):
        response = await client.get("/api/v1/sessions/current")

        assert response.status_code == 401
        assert response.json()["type"].endswith("/invalid_session")

    async def test_unknown_session(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/sessions/current",
            headers={"X-Session-ID": "made-up"},
        )

        assert response.status_code == 401

    async def test_describe(self, client: AsyncClient, login, client_tenant: Tenant, add_record):
        await add_record(client_tenant)
        headers = await login("5678")

        response = await client.get("/api/v1/sessions/current", headers=headers)

        assert response.status_code == 200
        assert response.json()["record_count"] == 1

    async def test_end_session_writes_pending_edits(
        self,
        client: AsyncClient,
        login,
        store,
        client_tenant: Tenant,
        add_record,
    ):
        record = await add_record(client_tenant)
        headers = await login("5678")
        await client.patch(
            f"/api/v1/records/{record.id}",
            json={"field": "caption", "value": "Bye"},
            headers=headers,
        )

        response = await client.delete("/api/v1/sessions/current", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"flushed": 1}
        assert (await store.get(record.id)).caption == "Bye"

        again = await client.get("/api/v1/sessions/current", headers=headers)
        assert again.status_code == 401


class TestScope:
    async def test_agency_narrows_and_widens(
        self,
        client: AsyncClient,
        login,
        agency_tenant: Tenant,
        client_tenant: Tenant,
        other_tenant: Tenant,
        add_record,
    ):
        await add_record(client_tenant)
        await add_record(other_tenant)
        headers = await login("1991")

        narrowed = await client.put(
            "/api/v1/sessions/current/scope",
            json={"tenant_id": str(client_tenant.id)},
            headers=headers,
        )
        assert narrowed.status_code == 200
        assert narrowed.json()["scope_tenant_id"] == str(client_tenant.id)
        assert narrowed.json()["record_count"] == 1

        widened = await client.put(
            "/api/v1/sessions/current/scope",
            json={"tenant_id": None},
            headers=headers,
        )
        assert widened.json()["scope_tenant_id"] is None
        assert widened.json()["record_count"] == 2

    async def test_client_cannot_change_scope(
        self,
        client: AsyncClient,
        login,
        client_tenant: Tenant,
        other_tenant: Tenant,
    ):
        headers = await login("5678")

        response = await client.put(
            "/api/v1/sessions/current/scope",
            json={"tenant_id": str(other_tenant.id)},
            headers=headers,
        )

        assert response.status_code == 403
        assert response.json()["required_privilege"] == "super"

    async def test_unknown_tenant(self, client: AsyncClient, login, agency_tenant: Tenant):
        headers = await login("1991")

        response = await client.put(
            "/api/v1/sessions/current/scope",
            json={"tenant_id": "00000000-0000-0000-0000-000000000000"},
            headers=headers,
        )

        assert response.status_code == 404


class TestNotices:
    async def test_notices_drain(
        self,
        client: AsyncClient,
        login,
        scheduling_recorder,
        add_tenant,
        add_record,
        app,
    ):
        scheduling_recorder.status_code = 500
        scheduling_recorder.body = {"error": "Upstream exploded"}
        tenant = await add_tenant(
            secret="2468",
            integration_accounts=[{"platform": "instagram", "account_id": "ig-1"}],
        )
        record = await add_record(tenant, media_url="https://cdn.example.com/a.jpg")
        headers = await login("2468")

        await client.patch(
            f"/api/v1/records/{record.id}",
            json={"field": "status", "value": "Approved"},
            headers=headers,
        )
        desk = await app.state.sessions.get(headers["X-Session-ID"])
        await desk.queue.flush()

        first = await client.get("/api/v1/sessions/current/notices", headers=headers)
        assert first.status_code == 200
        items = first.json()["items"]
        assert len(items) == 1
        assert items[0]["kind"] == "scheduling_failed"
        assert items[0]["record_id"] == record.id
        assert items[0]["problem"]["status"] == 502

        second = await client.get("/api/v1/sessions/current/notices", headers=headers)
        assert second.json()["items"] == []
