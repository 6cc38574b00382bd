"""
Order read paths: dashboard listing filters and per-customer running totals.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db.models import IN_PROGRESS_STATUSES, Order, Product, User

SORTABLE_FIELDS = {
    "createdAt": Order.created_at,
    "totalAmount": Order.total_amount,
    "quantity": Order.quantity,
    "status": Order.status,
}


@dataclass
class OrderFilters:
    statuses: list[str] = field(default_factory=list)
    start_date: date | None = None
    end_date: date | None = None
    keyword: str | None = None
    archived: bool | None = False
    sort: str = "createdAt"
    descending: bool = True


def parse_status_list(raw: str | None) -> list[str]:
    """Split a comma-separated status filter ("CONFIRMED,PURCHASED")."""
    if not raw:
        return []
    return [part.strip().upper() for part in raw.split(",") if part.strip()]


def date_range_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """Inclusive bounds; the end date is extended to the end of that day."""
    lower = datetime.combine(start, time.min) if start else None
    upper = datetime.combine(end, time.max) if end else None
    return lower, upper


def apply_filters(query: Select, filters: OrderFilters) -> Select:
    if filters.statuses:
        query = query.where(Order.status.in_(filters.statuses))
    lower, upper = date_range_bounds(filters.start_date, filters.end_date)
    if lower is not None:
        query = query.where(Order.created_at >= lower)
    if upper is not None:
        query = query.where(Order.created_at <= upper)
    if filters.keyword:
        query = query.where(Product.keyword.ilike(f"%{filters.keyword.strip()}%"))
    if filters.archived is not None:
        query = query.where(Order.is_archived == filters.archived)
    return query


async def list_orders(db: AsyncSession, filters: OrderFilters) -> list[Order]:
    sort_column = SORTABLE_FIELDS.get(filters.sort, Order.created_at)
    query = (
        select(Order)
        .join(Product, Order.product_id == Product.id)
        .options(selectinload(Order.user), selectinload(Order.product))
        .execution_options(populate_existing=True)
    )
    query = apply_filters(query, filters)
    query = query.order_by(sort_column.desc() if filters.descending else sort_column.asc(), Order.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_orders_for_export(db: AsyncSession, filters: OrderFilters) -> list[Order]:
    """All matching orders (current and history), grouped by buyer, newest first."""
    query = (
        select(Order)
        .join(Product, Order.product_id == Product.id)
        .join(User, Order.user_id == User.id)
        .options(selectinload(Order.user), selectinload(Order.product))
        .execution_options(populate_existing=True)
    )
    query = apply_filters(query, filters)
    query = query.order_by(User.name.asc(), Order.created_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def in_progress_orders(db: AsyncSession, user_id: uuid.UUID) -> list[Order]:
    """A customer's current (non-archived) orders still being fulfilled."""
    result = await db.execute(
        select(Order)
        .where(
            Order.user_id == user_id,
            Order.is_archived == False,  # noqa: E712
            Order.status.in_(IN_PROGRESS_STATUSES),
        )
        .options(selectinload(Order.product))
        .order_by(Order.created_at.asc())
    )
    return list(result.scalars().all())
