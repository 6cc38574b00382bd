"""
Stock ledger tests — atomic reservation against variant sold counters.
"""

import asyncio

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from conftest import sold_of
from db.models import Product, ProductVariant
from db.session import Base
from orders import ledger


@pytest.mark.asyncio
class TestTryReserve:

    async def test_reserve_within_stock(self, test_db, seeded_db):
        variant_id = seeded_db["variant_ids"]["S"]
        assert await ledger.try_reserve(test_db, variant_id, 3) is True
        await test_db.commit()
        assert await sold_of(test_db, variant_id) == 3

    async def test_reserve_last_unit_then_reject(self, test_db, seeded_db):
        """M has stock 5 / sold 4: one unit fits, the next does not."""
        variant_id = seeded_db["variant_ids"]["M"]
        assert await ledger.try_reserve(test_db, variant_id, 1) is True
        assert await ledger.try_reserve(test_db, variant_id, 1) is False
        await test_db.commit()
        assert await sold_of(test_db, variant_id) == 5

    async def test_reject_leaves_counter_untouched(self, test_db, seeded_db):
        variant_id = seeded_db["variant_ids"]["M"]
        assert await ledger.try_reserve(test_db, variant_id, 2) is False
        await test_db.commit()
        assert await sold_of(test_db, variant_id) == 4

    async def test_unlimited_stock_always_reserves(self, test_db, seeded_db):
        variant_id = seeded_db["variant_ids"]["L"]
        assert await ledger.try_reserve(test_db, variant_id, 1000) is True
        await test_db.commit()
        assert await sold_of(test_db, variant_id) == 1000

    async def test_zero_stock_is_sold_out(self, test_db, seeded_db):
        variant_id = seeded_db["variant_ids"]["S"]
        await test_db.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .values(stock=0)
        )
        await test_db.commit()
        assert await ledger.try_reserve(test_db, variant_id, 1) is False


@pytest.mark.asyncio
class TestRelease:

    async def test_release_decrements(self, test_db, seeded_db):
        variant_id = seeded_db["variant_ids"]["M"]
        await ledger.release(test_db, variant_id, 3)
        await test_db.commit()
        assert await sold_of(test_db, variant_id) == 1

    async def test_release_is_not_clamped(self, test_db, seeded_db):
        variant_id = seeded_db["variant_ids"]["S"]
        await ledger.release(test_db, variant_id, 2)
        await test_db.commit()
        assert await sold_of(test_db, variant_id) == -2


@pytest.mark.asyncio
class TestFindVariant:

    async def test_exact_then_case_insensitive(self, test_db, seeded_db):
        shirt_id = seeded_db["shirt_id"]
        assert await ledger.find_variant_id(test_db, shirt_id, "M") == seeded_db["variant_ids"]["M"]
        assert await ledger.find_variant_id(test_db, shirt_id, "m") == seeded_db["variant_ids"]["M"]

    async def test_unknown_size(self, test_db, seeded_db):
        assert await ledger.find_variant_id(test_db, seeded_db["shirt_id"], "XXL") is None
        assert await ledger.find_variant_id(test_db, seeded_db["shirt_id"], None) is None


@pytest.mark.asyncio
async def test_concurrent_reservations_never_oversell(tmp_path):
    """Ten independent sessions race for a variant with stock 3: exactly three win."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as db:
        product = Product(
            keyword="HOT",
            name="Limited",
            variants=[ProductVariant(size="F", price=100, stock=3, sold=0)],
        )
        db.add(product)
        await db.commit()
        variant_id = product.variants[0].id

    async def attempt() -> bool:
        async with factory() as db:
            reserved = await ledger.try_reserve(db, variant_id, 1)
            await db.commit()
            return reserved

    try:
        results = await asyncio.gather(*(attempt() for _ in range(10)))
        assert results.count(True) == 3
        async with factory() as db:
            assert await sold_of(db, variant_id) == 3
    finally:
        await engine.dispose()
