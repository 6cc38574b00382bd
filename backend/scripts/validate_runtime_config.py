#!/usr/bin/env python3
"""Validate runtime configuration for pre-production/production deploys.

Examples:
  python backend/scripts/validate_runtime_config.py
  python backend/scripts/validate_runtime_config.py --require-line-token --pretty
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any

# Add backend/ to path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import Settings, is_local_env


def _validate_settings(*, require_line_token: bool) -> tuple[list[str], dict[str, Any]]:
    # Built directly so every problem is reported, not only the first guardrail hit.
    settings = Settings()
    local_env = is_local_env(settings.app_env)
    failures: list[str] = []

    if not local_env:
        if settings.debug:
            failures.append("DEBUG=true is not allowed outside local/dev/test")
        if not settings.line_channel_secret.strip():
            failures.append("LINE_CHANNEL_SECRET is required outside local/dev/test")
        if settings.database_url.startswith("sqlite"):
            failures.append("DATABASE_URL must point at PostgreSQL outside local/dev/test")

    if require_line_token and not settings.line_channel_access_token.strip():
        failures.append("LINE_CHANNEL_ACCESS_TOKEN is required when --require-line-token is set")

    summary = {
        "status": "success" if not failures else "failed",
        "app_env": settings.app_env,
        "local_env": local_env,
        "require_line_token": bool(require_line_token),
        "failures": failures,
    }
    return failures, summary


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate deployment runtime config")
    parser.add_argument(
        "--require-line-token",
        action="store_true",
        help="Require the LINE channel access token (needed to send replies)",
    )
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    args = parser.parse_args()

    try:
        failures, summary = _validate_settings(require_line_token=bool(args.require_line_token))
    except Exception as exc:  # noqa: BLE001
        summary = {
            "status": "failed",
            "error": str(exc),
            "require_line_token": bool(args.require_line_token),
        }
        failures = [str(exc)]

    if args.pretty:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        print(json.dumps(summary))

    return 0 if not failures else 1


if __name__ == "__main__":
    raise SystemExit(main())
