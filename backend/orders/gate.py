"""
Ordering Gate — the process-wide "ordering enabled" switch.

Persisted as a single row in system_settings so every server instance sees
the same value. A missing row means ordering is ENABLED (fail-open).
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import SystemSetting

logger = structlog.get_logger()

ORDERING_ENABLED_KEY = "ordering_enabled"


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() not in {"false", "0", "no", "off"}


async def is_ordering_enabled(db: AsyncSession) -> bool:
    setting = await db.get(SystemSetting, ORDERING_ENABLED_KEY, populate_existing=True)
    if setting is None:
        return True
    return _parse_bool(setting.value)


async def set_ordering_enabled(db: AsyncSession, enabled: bool) -> bool:
    try:
        setting = await db.get(SystemSetting, ORDERING_ENABLED_KEY)
        if setting is None:
            db.add(SystemSetting(key=ORDERING_ENABLED_KEY, value=str(enabled).lower()))
        else:
            setting.value = str(enabled).lower()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("settings.ordering_toggled", enabled=enabled)
    return enabled
