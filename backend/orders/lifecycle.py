"""
Order Lifecycle — order creation and status/stock reconciliation.

Every status other than CANCELLED holds a stock reservation. The sold
counter on a variant therefore moves only when an order crosses the
CANCELLED boundary or is hard-deleted while still holding stock:

    active    -> CANCELLED   release(variant, quantity)
    CANCELLED -> active      try_reserve(variant, quantity)   (batch fails if it can't)
    active    -> deleted     release(variant, quantity)
    CANCELLED -> deleted     no ledger change
    archive flag flip        no ledger change

Orders store the variant's size as a string rather than a variant id, so
ledger adjustments are keyed by (product_id, size). Sizes that no longer
match any variant are skipped: there is nothing to release and no ceiling
to enforce.

Batch operations run as one unit of work. Any failure rolls back every
status write and every ledger adjustment in the batch.
"""

import uuid
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import CANCELLED, ORDER_STATUSES, Order, Product, ProductVariant, User
from orders import ledger

logger = structlog.get_logger()

DEFAULT_SIZE = "F"
DEFAULT_ORDER_STATUS = "CONFIRMED"


# ─── Errors & results ───────────────────────────────────────────────────────


class OrderError(Exception):
    """Base class for order lifecycle failures."""


class InsufficientStockError(OrderError):
    """A restore (CANCELLED -> active) could not re-reserve stock."""

    def __init__(self, product_id: uuid.UUID, size: str | None, quantity: int):
        super().__init__(
            f"Not enough stock to restore {quantity} x size '{size}' of product {product_id}"
        )
        self.product_id = product_id
        self.size = size
        self.quantity = quantity


class InvalidStatusError(OrderError):
    def __init__(self, status: str):
        super().__init__(f"Unknown order status '{status}'")
        self.status = status


class OrderRejection(str, Enum):
    """Why an order intent did not become an order."""

    OUT_OF_STOCK = "OUT_OF_STOCK"
    SIZE_NOT_FOUND = "SIZE_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"


@dataclass
class OrderOutcome:
    order: Order | None = None
    rejection: OrderRejection | None = None
    variant: ProductVariant | None = None
    requested_size: str = ""

    @property
    def accepted(self) -> bool:
        return self.order is not None


# ─── Creation ───────────────────────────────────────────────────────────────


def resolve_variant(variants: list[ProductVariant], size: str | None) -> ProductVariant | None:
    """Pick the variant an order for `size` applies to.

    No size: the sole variant if there is exactly one, otherwise size "F".
    Matching is exact first, then case-insensitive.
    """
    size = (size or "").strip()
    if not size:
        if len(variants) == 1:
            return variants[0]
        size = DEFAULT_SIZE

    for variant in variants:
        if variant.size == size:
            return variant
    folded = size.casefold()
    for variant in variants:
        if variant.size.casefold() == folded:
            return variant
    return None


async def create_order(
    db: AsyncSession,
    user: User,
    product: Product | None,
    size: str | None,
    quantity: int,
    status: str = DEFAULT_ORDER_STATUS,
) -> OrderOutcome:
    """Reserve stock and record the order as a single unit of work.

    `product` must have its variants loaded. A failed reservation leaves no
    order row behind and is reported as OUT_OF_STOCK, not raised.
    """
    requested = (size or "").strip()
    if product is None:
        return OrderOutcome(rejection=OrderRejection.PRODUCT_NOT_FOUND, requested_size=requested)
    if quantity < 1:
        raise ValueError("quantity must be a positive integer")

    variant = resolve_variant(list(product.variants), requested)
    if variant is None:
        logger.info(
            "order.rejected",
            reason=OrderRejection.SIZE_NOT_FOUND.value,
            keyword=product.keyword,
            size=requested,
        )
        return OrderOutcome(rejection=OrderRejection.SIZE_NOT_FOUND, requested_size=requested)

    try:
        if not await ledger.try_reserve(db, variant.id, quantity):
            # Nothing was written; end the transaction without expiring loaded state.
            await db.commit()
            logger.info(
                "order.rejected",
                reason=OrderRejection.OUT_OF_STOCK.value,
                keyword=product.keyword,
                size=variant.size,
                quantity=quantity,
            )
            return OrderOutcome(
                rejection=OrderRejection.OUT_OF_STOCK,
                variant=variant,
                requested_size=requested,
            )

        order = Order(
            user_id=user.id,
            product_id=product.id,
            size=variant.size,
            quantity=quantity,
            total_amount=variant.price * quantity,
            status=status,
        )
        db.add(order)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "order.created",
        order_id=str(order.id),
        keyword=product.keyword,
        size=variant.size,
        quantity=quantity,
        total_amount=order.total_amount,
    )
    return OrderOutcome(order=order, variant=variant, requested_size=requested)


# ─── Batch reconciliation ───────────────────────────────────────────────────


StockKey = tuple[uuid.UUID, str | None]


def stock_delta(order: Order, new_status: str) -> int:
    """Signed change to `sold` caused by moving `order` to `new_status`."""
    was_cancelled = order.status == CANCELLED
    now_cancelled = new_status == CANCELLED
    if now_cancelled and not was_cancelled:
        return -order.quantity
    if was_cancelled and not now_cancelled:
        return order.quantity
    return 0


async def _apply_deltas(db: AsyncSession, deltas: dict[StockKey, int]) -> None:
    """Push aggregated per-(product, size) deltas through the ledger.

    Releases run before reservations so a batch that cancels and restores
    against the same variant nets out. Keys are visited in a stable order so
    concurrent batches lock variant rows in the same sequence.
    """
    ordered = sorted(
        ((key, delta) for key, delta in deltas.items() if delta != 0),
        key=lambda item: (item[1] > 0, str(item[0][0]), item[0][1] or ""),
    )
    for (product_id, size), delta in ordered:
        variant_id = await ledger.find_variant_id(db, product_id, size)
        if variant_id is None:
            logger.warning(
                "ledger.orphaned_size",
                product_id=str(product_id),
                size=size,
                delta=delta,
            )
            continue
        if delta < 0:
            await ledger.release(db, variant_id, -delta)
        elif not await ledger.try_reserve(db, variant_id, delta):
            raise InsufficientStockError(product_id, size, delta)


async def _load_orders(db: AsyncSession, order_ids: list[uuid.UUID]) -> list[Order]:
    if not order_ids:
        return []
    result = await db.execute(
        select(Order)
        .where(Order.id.in_(order_ids))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def update_orders(
    db: AsyncSession,
    order_ids: list[uuid.UUID],
    *,
    status: str | None = None,
    delete_reason: str | None = None,
    is_archived: bool | None = None,
) -> int:
    """Apply a status change and/or archive flag to a batch of orders atomically.

    Unknown ids are skipped. Returns the number of orders updated.
    """
    if status is not None and status not in ORDER_STATUSES:
        raise InvalidStatusError(status)

    try:
        orders = await _load_orders(db, order_ids)

        if status is not None:
            deltas: dict[StockKey, int] = defaultdict(int)
            for order in orders:
                deltas[(order.product_id, order.size)] += stock_delta(order, status)
            await _apply_deltas(db, deltas)

        for order in orders:
            if status is not None:
                order.status = status
                if delete_reason is not None:
                    order.delete_reason = delete_reason
            if is_archived is not None:
                order.is_archived = is_archived

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "orders.batch_updated",
        count=len(orders),
        status=status,
        is_archived=is_archived,
    )
    return len(orders)


async def batch_update_status(
    db: AsyncSession,
    order_ids: list[uuid.UUID],
    new_status: str,
    delete_reason: str | None = None,
) -> int:
    return await update_orders(db, order_ids, status=new_status, delete_reason=delete_reason)


async def set_archived(db: AsyncSession, order_ids: list[uuid.UUID], is_archived: bool) -> int:
    """Move orders between the current and history views. Stock is untouched."""
    return await update_orders(db, order_ids, is_archived=is_archived)


async def batch_delete(db: AsyncSession, order_ids: list[uuid.UUID]) -> int:
    """Hard-delete orders, releasing stock still held by non-cancelled ones."""
    try:
        orders = await _load_orders(db, order_ids)
        deltas: dict[StockKey, int] = defaultdict(int)
        for order in orders:
            if order.status != CANCELLED:
                deltas[(order.product_id, order.size)] -= order.quantity
        await _apply_deltas(db, deltas)

        found_ids = [order.id for order in orders]
        if found_ids:
            await db.execute(
                delete(Order).where(Order.id.in_(found_ids)).execution_options(synchronize_session=False)
            )
            for order in orders:
                db.expunge(order)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("orders.batch_deleted", count=len(orders))
    return len(orders)
