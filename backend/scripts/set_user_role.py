#!/usr/bin/env python3
"""Grant or revoke ADMIN for a chat user (admins may upload catalog entries over chat).

Usage:
  python backend/scripts/set_user_role.py --line-id Uxxxxxxxx --role ADMIN
  python backend/scripts/set_user_role.py --line-id Uxxxxxxxx --role CUSTOMER
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add backend/ to import path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings
from db.models import USER_ROLES, User


async def _set_role(args: argparse.Namespace) -> dict[str, Any]:
    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with session_factory() as db:
            result = await db.execute(select(User).where(User.line_id == args.line_id))
            user = result.scalar_one_or_none()
            created = False
            if user is None:
                if not args.create_if_missing:
                    raise ValueError(f"User not found: {args.line_id}")
                user = User(line_id=args.line_id, role=args.role)
                db.add(user)
                created = True
            previous = None if created else user.role
            user.role = args.role
            if args.dry_run:
                await db.rollback()
            else:
                await db.commit()
            return {
                "status": "success",
                "dry_run": args.dry_run,
                "line_id": args.line_id,
                "created": created,
                "previous_role": previous,
                "role": args.role,
            }
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Set a chat user's role")
    parser.add_argument("--line-id", required=True, help="LINE user id (source.userId)")
    parser.add_argument("--role", choices=list(USER_ROLES), default="ADMIN")
    parser.add_argument(
        "--create-if-missing",
        action="store_true",
        help="Create the user when it has never messaged the shop",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report the change without committing")
    args = parser.parse_args()
    try:
        result = asyncio.run(_set_role(args))
    except ValueError as exc:
        print(json.dumps({"status": "failed", "error": str(exc)}))
        return 1
    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
