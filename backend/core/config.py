"""
GroupBuy Backend Configuration

Uses pydantic-settings for type-safe environment variable loading.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

LOCAL_ENVS = {"", "local", "dev", "development", "test"}

# Find .env file: check CWD first, then parent (project root)
_env_file = Path(".env")
if not _env_file.exists():
    _parent_env = Path(__file__).resolve().parent.parent.parent / ".env"
    if _parent_env.exists():
        _env_file = _parent_env


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "GroupBuy"
    app_version: str = "1.0.0"
    app_env: str = "local"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./groupbuy.db"
    database_echo: bool = False

    # LINE Messaging API
    line_channel_secret: str = ""
    line_channel_access_token: str = ""
    line_api_base_url: str = "https://api.line.me/v2/bot"
    line_timeout_seconds: float = 10.0

    # CSV export "platform" column
    line_platform_label: str = "官方賴"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {
        "env_file": str(_env_file),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    settings = Settings()
    _enforce_security_guardrails(settings)
    return settings


def is_local_env(raw_env: str) -> bool:
    return raw_env.strip().lower() in LOCAL_ENVS


def _enforce_security_guardrails(settings: Settings) -> None:
    if is_local_env(settings.app_env):
        return

    if settings.debug:
        raise ValueError("Refusing to start with debug=true outside local/dev/test")
    if not settings.line_channel_secret.strip():
        raise ValueError("Refusing to start without LINE_CHANNEL_SECRET outside local/dev/test")
