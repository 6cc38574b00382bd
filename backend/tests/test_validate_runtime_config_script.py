from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path


def _parse_json_output(stdout: str) -> dict:
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    return json.loads(lines[-1])


def _run(env_overrides: dict[str, str], *args: str) -> subprocess.CompletedProcess:
    repo_root = Path(__file__).resolve().parents[2]
    script_path = repo_root / "backend" / "scripts" / "validate_runtime_config.py"

    env = os.environ.copy()
    env.update(env_overrides)
    return subprocess.run(
        [sys.executable, str(script_path), *args],
        cwd=str(repo_root),
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )


def test_validate_runtime_config_fails_when_prod_secret_missing():
    completed = _run(
        {
            "APP_ENV": "production",
            "DEBUG": "false",
            "LINE_CHANNEL_SECRET": "",
            "DATABASE_URL": "sqlite+aiosqlite:///./groupbuy.db",
        }
    )
    assert completed.returncode == 1
    payload = _parse_json_output(completed.stdout)
    assert payload["status"] == "failed"
    assert any("LINE_CHANNEL_SECRET" in message for message in payload["failures"])
    assert any("DATABASE_URL" in message for message in payload["failures"])


def test_validate_runtime_config_passes_with_required_line_settings():
    completed = _run(
        {
            "APP_ENV": "production",
            "DEBUG": "false",
            "LINE_CHANNEL_SECRET": "prod-channel-secret",
            "LINE_CHANNEL_ACCESS_TOKEN": "prod-access-token",
            "DATABASE_URL": "postgresql+asyncpg://groupbuy:pw@db:5432/groupbuy",
        },
        "--require-line-token",
    )
    assert completed.returncode == 0
    payload = _parse_json_output(completed.stdout)
    assert payload["status"] == "success"
    assert payload["failures"] == []


def test_validate_runtime_config_requires_token_when_asked():
    completed = _run(
        {
            "APP_ENV": "test",
            "LINE_CHANNEL_ACCESS_TOKEN": "",
        },
        "--require-line-token",
    )
    assert completed.returncode == 1
    payload = _parse_json_output(completed.stdout)
    assert payload["local_env"] is True
    assert any("LINE_CHANNEL_ACCESS_TOKEN" in message for message in payload["failures"])
