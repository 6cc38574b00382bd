#!/usr/bin/env python3
"""Make every product variant unlimited (stock = NULL).

Used when moving a catalog that stored 0 as "not tracked" onto the
nullable-stock model, where 0 would mean "sold out".

Usage:
  python backend/scripts/reset_stock_limits.py [--dry-run] [--pretty]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add backend/ to import path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings
from orders import ledger


async def _reset(args: argparse.Namespace) -> dict[str, Any]:
    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as db:
            count = await ledger.clear_stock_limits(db)
            if args.dry_run:
                await db.rollback()
            else:
                await db.commit()
            return {"status": "success", "dry_run": args.dry_run, "variants_updated": count}
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Set all variant stock ceilings to unlimited")
    parser.add_argument("--dry-run", action="store_true", help="Compute changes without committing")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    args = parser.parse_args()
    result = asyncio.run(_reset(args))
    print(json.dumps(result, indent=2 if args.pretty else None, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
