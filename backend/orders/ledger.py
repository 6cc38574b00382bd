"""
Stock Ledger — atomic reservation against a variant's sold counter.

Every stock mutation on the hot path goes through `try_reserve` / `release`.
Both are single UPDATE statements evaluated by the database, so two webhook
deliveries racing for the last unit of a variant are serialized by the
storage engine's row lock, never by a read-then-write in Python:

    UPDATE product_variants
       SET sold = sold + :qty
     WHERE id = :variant_id
       AND (stock IS NULL OR sold + :qty <= stock)

None of these functions commit. The caller owns the transaction so that a
reservation and the order row it pays for land (or roll back) together.

Statements run with synchronize_session=False: ORM instances already loaded
in the session keep their old `sold` value until re-read with
populate_existing.
"""

import uuid

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ProductVariant

logger = structlog.get_logger()


async def try_reserve(db: AsyncSession, variant_id: uuid.UUID, quantity: int) -> bool:
    """Increment `sold` by `quantity` iff stock is unlimited or the ceiling holds.

    Returns True when the row was updated, False when the reservation would
    overflow the variant's stock (or the variant does not exist).
    """
    stmt = (
        update(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .where(
            or_(
                ProductVariant.stock.is_(None),
                ProductVariant.sold + quantity <= ProductVariant.stock,
            )
        )
        .values(sold=ProductVariant.sold + quantity)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    reserved = result.rowcount == 1
    if not reserved:
        logger.info("ledger.reserve_rejected", variant_id=str(variant_id), quantity=quantity)
    return reserved


async def release(db: AsyncSession, variant_id: uuid.UUID, quantity: int) -> None:
    """Decrement `sold` by `quantity` unconditionally.

    No lower bound is enforced; a malformed compensation can drive `sold`
    negative and is left visible rather than clamped.
    """
    stmt = (
        update(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .values(sold=ProductVariant.sold - quantity)
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)


async def find_variant_id(db: AsyncSession, product_id: uuid.UUID, size: str | None) -> uuid.UUID | None:
    """Resolve a (product, size) pair to a variant id: exact match, then case-insensitive."""
    if size is None:
        return None
    exact = await db.execute(
        select(ProductVariant.id).where(
            ProductVariant.product_id == product_id,
            ProductVariant.size == size,
        )
    )
    variant_id = exact.scalar_one_or_none()
    if variant_id is not None:
        return variant_id

    loose = await db.execute(
        select(ProductVariant.id)
        .where(
            ProductVariant.product_id == product_id,
            func.lower(ProductVariant.size) == size.lower(),
        )
        .order_by(ProductVariant.created_at)
        .limit(1)
    )
    return loose.scalar_one_or_none()


# ──────────────────────────────────────────────────────────────────────────
# Maintenance (admin / migration tooling only)
# ──────────────────────────────────────────────────────────────────────────


async def reset_sold(db: AsyncSession) -> int:
    """Set every variant's sold counter to 0. Returns rows touched."""
    result = await db.execute(
        update(ProductVariant).values(sold=0).execution_options(synchronize_session=False)
    )
    return result.rowcount


async def clear_stock_limits(db: AsyncSession) -> int:
    """Make every variant unlimited (stock = NULL). Returns rows touched."""
    result = await db.execute(
        update(ProductVariant).values(stock=None).execution_options(synchronize_session=False)
    )
    return result.rowcount


async def set_sold(db: AsyncSession, variant_id: uuid.UUID, sold: int) -> None:
    await db.execute(
        update(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .values(sold=sold)
        .execution_options(synchronize_session=False)
    )

