"""
Settings Router — the ordering on/off switch.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from orders.gate import is_ordering_enabled, set_ordering_enabled

router = APIRouter(prefix="/api/settings", tags=["settings"])


class OrderingSetting(BaseModel):
    value: bool


class OrderingToggle(BaseModel):
    enabled: bool


@router.get("", response_model=OrderingSetting)
async def get_ordering_setting(db: AsyncSession = Depends(get_db)):
    """Whether chat orders are currently accepted (true when never set)."""
    return OrderingSetting(value=await is_ordering_enabled(db))


@router.post("", response_model=OrderingSetting)
async def post_ordering_setting(
    body: OrderingToggle,
    db: AsyncSession = Depends(get_db),
):
    return OrderingSetting(value=await set_ordering_enabled(db, body.enabled))
