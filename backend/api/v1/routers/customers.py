"""
Customers Router — chat users who have ordered or messaged the shop.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from api.schemas import CamelModel
from db.models import User

router = APIRouter(prefix="/api/customers", tags=["customers"])


class CustomerResponse(CamelModel):
    id: UUID
    line_id: str
    name: str | None
    avatar_url: str | None
    created_at: datetime


@router.get("", response_model=list[CustomerResponse])
async def list_customers(db: AsyncSession = Depends(get_db)):
    """List CUSTOMER users, newest first."""
    result = await db.execute(
        select(User).where(User.role == "CUSTOMER").order_by(User.created_at.desc())
    )
    return result.scalars().all()
