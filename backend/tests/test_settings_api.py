"""
API Tests — ordering gate and customer listing.
"""

import pytest
from httpx import AsyncClient

from db.models import SystemSetting
from orders.gate import ORDERING_ENABLED_KEY, is_ordering_enabled


@pytest.mark.asyncio
class TestOrderingSetting:

    async def test_defaults_to_enabled(self, client: AsyncClient):
        resp = await client.get("/api/settings")
        assert resp.status_code == 200
        assert resp.json() == {"value": True}

    async def test_toggle_persists(self, client: AsyncClient, test_db):
        resp = await client.post("/api/settings", json={"enabled": False})
        assert resp.status_code == 200
        assert resp.json() == {"value": False}

        resp = await client.get("/api/settings")
        assert resp.json() == {"value": False}
        assert await is_ordering_enabled(test_db) is False

        await client.post("/api/settings", json={"enabled": True})
        assert (await client.get("/api/settings")).json() == {"value": True}

    async def test_missing_enabled_is_400(self, client: AsyncClient):
        resp = await client.post("/api/settings", json={})
        assert resp.status_code == 400

    async def test_unparseable_value_reads_as_enabled(self, test_db):
        test_db.add(SystemSetting(key=ORDERING_ENABLED_KEY, value="maybe"))
        await test_db.commit()
        assert await is_ordering_enabled(test_db) is True


@pytest.mark.asyncio
class TestCustomers:

    async def test_lists_customers_only(self, client: AsyncClient, seeded_db):
        resp = await client.get("/api/customers")
        assert resp.status_code == 200
        data = resp.json()
        assert [c["lineId"] for c in data] == ["U-customer-0001"]
        assert data[0]["name"] == "小明"
        assert "avatarUrl" in data[0]


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
