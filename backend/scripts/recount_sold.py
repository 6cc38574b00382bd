#!/usr/bin/env python3
"""Rebuild every variant's sold counter from the orders table.

Sold is reset to 0, then set to the summed quantity of all non-cancelled
orders (current and archived) per (product, size). Orders whose size no
longer matches a variant are reported and skipped.

Usage:
  python backend/scripts/recount_sold.py
  python backend/scripts/recount_sold.py --dry-run --pretty
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add backend/ to import path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings
from db.models import CANCELLED, Order
from orders import ledger


async def _recount(args: argparse.Namespace) -> dict[str, Any]:
    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as db:
            reset = await ledger.reset_sold(db)

            groups = await db.execute(
                select(Order.product_id, Order.size, func.sum(Order.quantity))
                .where(Order.status != CANCELLED)
                .group_by(Order.product_id, Order.size)
            )
            totals: dict[Any, int] = {}
            skipped: list[dict[str, Any]] = []
            for product_id, size, quantity in groups.all():
                variant_id = await ledger.find_variant_id(db, product_id, size)
                if variant_id is None:
                    skipped.append({"product_id": str(product_id), "size": size, "quantity": int(quantity)})
                    continue
                # "m" and "M" orders both land on the same variant.
                totals[variant_id] = totals.get(variant_id, 0) + int(quantity)

            for variant_id, sold in totals.items():
                await ledger.set_sold(db, variant_id, sold)
            updated = len(totals)

            if args.dry_run:
                await db.rollback()
            else:
                await db.commit()

            return {
                "status": "success",
                "dry_run": args.dry_run,
                "variants_reset": reset,
                "variants_updated": updated,
                "skipped_groups": skipped,
            }
    finally:
        await engine.dispose()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Recompute variant sold counters from orders")
    parser.add_argument("--dry-run", action="store_true", help="Compute changes without committing")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    result = asyncio.run(_recount(args))
    print(json.dumps(result, indent=2 if args.pretty else None, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
