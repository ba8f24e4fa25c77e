"""Integration tests for health endpoints."""

import pytest
from httpx import AsyncClient


pytestmark = pytest.mark.integration


class TestHealth:
    async def test_liveness(self, client: AsyncClient):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_readiness_checks_database(self, client: AsyncClient):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"] == {"database": "ok"}

    async def test_info(self, client: AsyncClient):
        response = await client.get("/info")

        assert response.status_code == 200
        data = response.json()
        assert data["app"] == "Content Desk"
        assert data["change_feed"] == "local"
        assert data["quiet_period_ms"] > 0

    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/health/live", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
