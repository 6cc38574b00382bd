"""
API Integration Tests — Product CRUD with seeded data.
"""

import uuid

import pytest
from httpx import AsyncClient

from conftest import add_order, sold_of
from db.models import Order


@pytest.mark.asyncio
class TestProductsIntegration:

    async def test_list_products_with_data(self, client: AsyncClient, seeded_db):
        """Seeded DB returns products with their variants."""
        resp = await client.get("/api/products")
        assert resp.status_code == 200
        data = resp.json()
        assert {p["keyword"] for p in data} == {"P01", "A01"}
        shirt = next(p for p in data if p["keyword"] == "P01")
        assert {v["size"] for v in shirt["variants"]} == {"S", "M", "L"}
        assert "imageUrl" in shirt

    async def test_get_product_by_id(self, client: AsyncClient, seeded_db):
        resp = await client.get(f"/api/products/{seeded_db['shirt_id']}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "adidas 唐衣-紅"
        medium = next(v for v in data["variants"] if v["size"] == "M")
        assert medium["stock"] == 5
        assert medium["sold"] == 4

    async def test_get_product_not_found(self, client: AsyncClient):
        resp = await client.get(f"/api/products/{uuid.uuid4()}")
        assert resp.status_code == 404

    async def test_malformed_id_is_400(self, client: AsyncClient):
        resp = await client.get("/api/products/not-a-uuid")
        assert resp.status_code == 400

    async def test_create_product(self, client: AsyncClient, seeded_db):
        resp = await client.post(
            "/api/products",
            json={
                "keyword": "n01",
                "name": "Nike 短褲",
                "variants": [{"size": "M", "price": 890, "stock": 5}, {"size": "L", "price": 890}],
            },
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["keyword"] == "N01"
        assert data["status"] == "ACTIVE"
        large = next(v for v in data["variants"] if v["size"] == "L")
        assert large["stock"] is None
        assert large["sold"] == 0

    async def test_duplicate_active_keyword_is_409(self, client: AsyncClient, seeded_db):
        resp = await client.post("/api/products", json={"keyword": "P01", "name": "Copy"})
        assert resp.status_code == 409

    async def test_archived_keyword_can_be_reused(self, client: AsyncClient, seeded_db):
        resp = await client.patch(f"/api/products/{seeded_db['shirt_id']}", json={"status": "ARCHIVED"})
        assert resp.status_code == 200

        resp = await client.post("/api/products", json={"keyword": "P01", "name": "New season"})
        assert resp.status_code == 201

        # The old one cannot come back while the new one holds the keyword.
        resp = await client.patch(f"/api/products/{seeded_db['shirt_id']}", json={"status": "ACTIVE"})
        assert resp.status_code == 409

    async def test_update_fields(self, client: AsyncClient, seeded_db):
        resp = await client.patch(
            f"/api/products/{seeded_db['bag_id']}",
            json={"name": "帆布包", "description": "大容量", "imageUrl": "https://img.example/bag.png"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "帆布包"
        assert data["imageUrl"] == "https://img.example/bag.png"

        resp = await client.patch(f"/api/products/{seeded_db['bag_id']}", json={"description": None})
        assert resp.json()["description"] is None
        assert resp.json()["name"] == "帆布包"

    async def test_variant_replacement_carries_sold(self, client: AsyncClient, test_db, seeded_db):
        resp = await client.patch(
            f"/api/products/{seeded_db['shirt_id']}",
            json={"variants": [{"size": "m", "price": 620, "stock": 8}, {"size": "XL", "price": 700}]},
        )
        assert resp.status_code == 200
        variants = {v["size"]: v for v in resp.json()["variants"]}
        assert set(variants) == {"m", "XL"}
        assert variants["m"]["sold"] == 4
        assert variants["m"]["price"] == 620
        assert variants["XL"]["sold"] == 0

    async def test_delete_product_cascades_orders(self, client: AsyncClient, test_db, seeded_db):
        order_id = await add_order(
            test_db,
            user_id=seeded_db["customer_id"],
            product_id=seeded_db["bag_id"],
            size="F",
            quantity=1,
            price=350,
        )
        resp = await client.delete(f"/api/products/{seeded_db['bag_id']}")
        assert resp.status_code == 204
        assert await test_db.get(Order, order_id, populate_existing=True) is None

        resp = await client.get(f"/api/products/{seeded_db['bag_id']}")
        assert resp.status_code == 404

    async def test_delete_missing_product_is_404(self, client: AsyncClient):
        resp = await client.delete(f"/api/products/{uuid.uuid4()}")
        assert resp.status_code == 404

    async def test_bulk_delete(self, client: AsyncClient, test_db, seeded_db):
        resp = await client.request(
            "DELETE",
            "/api/products",
            json={"ids": [str(seeded_db["shirt_id"]), str(seeded_db["bag_id"])]},
        )
        assert resp.status_code == 200
        assert resp.json() == {"count": 2}
        resp = await client.get("/api/products")
        assert resp.json() == []

    async def test_filter_products_by_status(self, client: AsyncClient, seeded_db):
        resp = await client.get("/api/products", params={"status": "ARCHIVED"})
        assert resp.status_code == 200
        assert resp.json() == []

    async def test_unchanged_variant_keeps_counter(self, client: AsyncClient, test_db, seeded_db):
        await client.patch(
            f"/api/products/{seeded_db['shirt_id']}",
            json={"variants": [{"size": "M", "price": 590, "stock": 5}]},
        )
        resp = await client.get(f"/api/products/{seeded_db['shirt_id']}")
        (variant,) = resp.json()["variants"]
        assert variant["sold"] == 4
        assert await sold_of(test_db, uuid.UUID(variant["id"])) == 4
