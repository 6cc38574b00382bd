"""
Seed Test Data — Creates a small demo catalog, customers and orders for development.

Run: python backend/scripts/seed_test_data.py [--admin-line-id Uxxxx]
"""

import argparse
import asyncio
import json
import os
import random
import sys
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add backend/ to import path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings
from db.models import Order, Product, ProductVariant, User
from db.session import Base

# Seed data constants
PRODUCTS = [
    ("P01", "adidas 唐衣-紅", [("S", 590, 10), ("M", 590, 10), ("L", 650, None)]),
    ("P02", "Nike 運動短褲", [("M", 890, 5), ("L", 890, 5)]),
    ("A01", "帆布托特包", [("F", 350, None)]),
    ("C01", "限量公仔", [("F", 1200, 3)]),
]
CUSTOMER_NAMES = ["小明", "阿華", "Mei", "Kevin", "佩佩"]
STATUSES = ["CONFIRMED", "CONFIRMED", "PURCHASED", "SHIPPING", "CANCELLED"]


async def seed_data(admin_line_id: str | None, seed: int, dry_run: bool = False) -> dict:
    """Create demo data for development."""
    rng = random.Random(seed)
    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with SessionLocal() as db:
            # ── Catalog ──────────────────────────────────────
            products = []
            for keyword, name, variants in PRODUCTS:
                product = Product(
                    keyword=keyword,
                    name=name,
                    status="ACTIVE",
                    variants=[
                        ProductVariant(size=size, price=price, stock=stock, sold=0)
                        for size, price, stock in variants
                    ],
                )
                db.add(product)
                products.append(product)
            await db.flush()

            # ── Users ────────────────────────────────────────
            customers = []
            for name in CUSTOMER_NAMES:
                user = User(line_id=f"U{uuid.uuid4().hex}", name=name, role="CUSTOMER")
                db.add(user)
                customers.append(user)
            if admin_line_id:
                db.add(User(line_id=admin_line_id, name="Admin", role="ADMIN"))
            await db.flush()

            # ── Orders (sold counters kept consistent) ───────
            order_count = 0
            for user in customers:
                for _ in range(rng.randint(1, 3)):
                    product = rng.choice(products)
                    variant = rng.choice(product.variants)
                    quantity = rng.randint(1, 2)
                    status = rng.choice(STATUSES)
                    holds_stock = status != "CANCELLED"
                    if holds_stock and variant.stock is not None and variant.sold + quantity > variant.stock:
                        continue
                    db.add(
                        Order(
                            user_id=user.id,
                            product_id=product.id,
                            size=variant.size,
                            quantity=quantity,
                            total_amount=variant.price * quantity,
                            status=status,
                            delete_reason="客人取消" if not holds_stock else None,
                        )
                    )
                    if holds_stock:
                        variant.sold += quantity
                    order_count += 1

            if dry_run:
                await db.rollback()
            else:
                await db.commit()
            return {
                "status": "success",
                "dry_run": dry_run,
                "products": len(products),
                "customers": len(customers),
                "orders": order_count,
                "admin_line_id": admin_line_id,
            }
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a development database with demo data")
    parser.add_argument("--admin-line-id", default=None, help="LINE user id to create as ADMIN")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--dry-run", action="store_true", help="Build the data without committing")
    args = parser.parse_args()
    print(json.dumps(asyncio.run(seed_data(args.admin_line_id, args.seed, args.dry_run)), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
