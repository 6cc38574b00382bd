"""
Orders Router — dashboard listing, batch status/archive updates, delete, CSV export.

Batch writes go through orders.lifecycle so that every status change which
crosses the CANCELLED boundary moves the variant sold counters in the same
transaction.
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_app_settings, get_db
from api.schemas import CamelModel, CountResponse
from core.config import Settings
from db.models import ORDER_STATUSES
from orders.export import export_filename, render_orders_csv
from orders.lifecycle import InsufficientStockError, batch_delete, update_orders
from orders.queries import OrderFilters, list_orders, list_orders_for_export, parse_status_list

logger = structlog.get_logger()

router = APIRouter(prefix="/api/orders", tags=["orders"])

OrderStatus = Literal[
    "PENDING",
    "CONFIRMED",
    "PURCHASED",
    "SHIPPING",
    "ARRIVED",
    "OUT_OF_STOCK",
    "COMPLETED",
    "CANCELLED",
]


# ─── Schemas ────────────────────────────────────────────────────────────────


class OrderUser(CamelModel):
    name: str | None
    line_id: str


class OrderProduct(CamelModel):
    name: str
    keyword: str


class OrderResponse(CamelModel):
    id: UUID
    user_id: UUID
    product_id: UUID
    size: str | None
    quantity: int
    total_amount: int
    status: str
    is_archived: bool
    delete_reason: str | None
    created_at: datetime
    updated_at: datetime
    user: OrderUser
    product: OrderProduct


class OrderBatchUpdate(CamelModel):
    ids: list[UUID] = Field(..., min_length=1)
    status: OrderStatus | None = None
    delete_reason: str | None = None
    is_archived: bool | None = None


class OrderBatchDelete(CamelModel):
    ids: list[UUID] = Field(..., min_length=1)


def _validate_statuses(raw: str | None) -> list[str]:
    statuses = parse_status_list(raw)
    unknown = [s for s in statuses if s not in ORDER_STATUSES]
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown status: {', '.join(unknown)}")
    return statuses


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[OrderResponse])
async def get_orders(
    status: str | None = None,
    sort: Literal["createdAt", "totalAmount", "quantity", "status"] = "createdAt",
    order: Literal["asc", "desc"] = "desc",
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    keyword: str | None = None,
    archived: bool = False,
    db: AsyncSession = Depends(get_db),
):
    """List orders. `status` is comma-separated (any of); the date range is inclusive."""
    filters = OrderFilters(
        statuses=_validate_statuses(status),
        start_date=start_date,
        end_date=end_date,
        keyword=keyword,
        archived=archived,
        sort=sort,
        descending=order == "desc",
    )
    return await list_orders(db, filters)


@router.get("/export")
async def export_orders(
    status: str | None = None,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Download matching orders (current and history) as CSV."""
    filters = OrderFilters(
        statuses=_validate_statuses(status),
        start_date=start_date,
        end_date=end_date,
        archived=None,
    )
    orders = await list_orders_for_export(db, filters)
    content = render_orders_csv(orders, settings.line_platform_label)
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@router.patch("", response_model=CountResponse)
async def patch_orders(
    body: OrderBatchUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Batch status and/or archive update. All orders change, or none do."""
    if body.status is None and body.is_archived is None:
        raise HTTPException(status_code=400, detail="Either status or isArchived is required")

    try:
        count = await update_orders(
            db,
            body.ids,
            status=body.status,
            delete_reason=body.delete_reason,
            is_archived=body.is_archived,
        )
    except InsufficientStockError as exc:
        logger.warning("orders.restore_rejected", product_id=str(exc.product_id), size=exc.size)
        raise HTTPException(status_code=409, detail=str(exc))
    return CountResponse(count=count)


@router.delete("", response_model=CountResponse)
async def delete_orders(
    body: OrderBatchDelete,
    db: AsyncSession = Depends(get_db),
):
    """Hard-delete orders, releasing stock held by any that were not cancelled."""
    count = await batch_delete(db, body.ids)
    return CountResponse(count=count)
