#!/usr/bin/env python3
"""Migrate legacy order statuses onto the current vocabulary.

Older deployments used status values that are not statuses any more:

  ARCHIVE  -> is_archived = true, status = CONFIRMED
              (archiving is a view flag, orthogonal to fulfilment)
  DELETED  -> status = CANCELLED
              (soft delete, superseded by cancel + hard delete)

Stock counters are not touched here; run recount_sold.py afterwards.

Usage:
  python backend/scripts/fix_archive_status.py [--dry-run] [--pretty]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add backend/ to import path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings
from db.models import CANCELLED, Order

LEGACY_ARCHIVE = "ARCHIVE"
LEGACY_DELETED = "DELETED"
ARCHIVE_TARGET_STATUS = "CONFIRMED"


async def _migrate(args: argparse.Namespace) -> dict[str, Any]:
    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as db:
            before = await db.execute(select(Order.status, func.count(Order.id)).group_by(Order.status))
            distribution = {status: count for status, count in before.all()}

            archived = await db.execute(
                update(Order)
                .where(Order.status == LEGACY_ARCHIVE)
                .values(is_archived=True, status=ARCHIVE_TARGET_STATUS)
                .execution_options(synchronize_session=False)
            )
            deleted = await db.execute(
                update(Order)
                .where(Order.status == LEGACY_DELETED)
                .values(status=CANCELLED)
                .execution_options(synchronize_session=False)
            )

            if args.dry_run:
                await db.rollback()
            else:
                await db.commit()

            return {
                "status": "success",
                "dry_run": args.dry_run,
                "status_distribution_before": distribution,
                "archive_migrated": archived.rowcount,
                "deleted_migrated": deleted.rowcount,
            }
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Move legacy ARCHIVE/DELETED statuses onto the current model")
    parser.add_argument("--dry-run", action="store_true", help="Compute changes without committing")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    args = parser.parse_args()
    result = asyncio.run(_migrate(args))
    print(json.dumps(result, indent=2 if args.pretty else None, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
