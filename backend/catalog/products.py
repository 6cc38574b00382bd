"""
Catalog Store — products and their size/price/stock variants.

Keywords are the chat trigger customers type, stored uppercase. A keyword is
unique among ACTIVE products only; archived products keep theirs so history
stays readable, and a new ACTIVE product may reuse it.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Iterable

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db.models import Order, Product, ProductVariant

logger = structlog.get_logger()

ACTIVE = "ACTIVE"
ARCHIVED = "ARCHIVED"


class DuplicateKeywordError(Exception):
    """Another ACTIVE product already uses the keyword."""

    def __init__(self, keyword: str):
        super().__init__(f"Keyword '{keyword}' is already used by an active product")
        self.keyword = keyword


@dataclass
class VariantSpec:
    size: str
    price: int = 0
    stock: int | None = None


def normalize_keyword(keyword: str) -> str:
    return keyword.strip().upper()


def _product_query():
    return (
        select(Product)
        .options(selectinload(Product.variants))
        .execution_options(populate_existing=True)
    )


async def get_product(db: AsyncSession, product_id: uuid.UUID) -> Product | None:
    result = await db.execute(_product_query().where(Product.id == product_id))
    return result.scalar_one_or_none()


async def get_active_product(db: AsyncSession, keyword: str) -> Product | None:
    """Look up the ACTIVE product for a chat keyword (case-insensitive)."""
    result = await db.execute(
        _product_query().where(
            Product.keyword == normalize_keyword(keyword),
            Product.status == ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def list_products(db: AsyncSession, status: str | None = None) -> list[Product]:
    query = _product_query().order_by(Product.created_at.desc())
    if status:
        query = query.where(Product.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


async def ensure_keyword_available(
    db: AsyncSession,
    keyword: str,
    exclude_product_id: uuid.UUID | None = None,
) -> None:
    """Raise DuplicateKeywordError if an ACTIVE product (other than the excluded one) owns keyword."""
    query = select(Product.id).where(Product.keyword == keyword, Product.status == ACTIVE)
    if exclude_product_id is not None:
        query = query.where(Product.id != exclude_product_id)
    result = await db.execute(query.limit(1))
    if result.scalar_one_or_none() is not None:
        raise DuplicateKeywordError(keyword)


def _dedupe_specs(specs: Iterable[VariantSpec]) -> list[VariantSpec]:
    seen: set[str] = set()
    unique: list[VariantSpec] = []
    for spec in specs:
        size = spec.size.strip()
        if not size or size in seen:
            continue
        seen.add(size)
        unique.append(VariantSpec(size=size, price=int(spec.price or 0), stock=spec.stock))
    return unique


async def replace_variants(
    db: AsyncSession,
    product: Product,
    specs: Iterable[VariantSpec],
    *,
    keep_stock: bool = False,
) -> None:
    """Delete every variant of `product` and recreate from `specs`.

    The sold counter of a size that survives the replacement (matched
    case-insensitively) is carried over to its new row. With `keep_stock`,
    so is its stock ceiling; chat uploads carry no stock and must not lift
    a limit set on the dashboard.
    """
    carried = {v.size.lower(): (v.sold, v.stock) for v in product.variants}
    product.variants.clear()
    # Deletes must reach the database before re-inserting the same (product, size).
    await db.flush()

    for spec in _dedupe_specs(specs):
        sold, stock = carried.get(spec.size.lower(), (0, None))
        product.variants.append(
            ProductVariant(
                size=spec.size,
                price=spec.price,
                stock=stock if keep_stock and spec.size.lower() in carried else spec.stock,
                sold=sold,
            )
        )
    await db.flush()


async def create_product(
    db: AsyncSession,
    *,
    keyword: str,
    name: str,
    description: str | None = None,
    image_url: str | None = None,
    variants: Iterable[VariantSpec] = (),
) -> Product:
    keyword = normalize_keyword(keyword)
    try:
        await ensure_keyword_available(db, keyword)
        product = Product(
            keyword=keyword,
            name=name,
            description=description,
            image_url=image_url,
            status=ACTIVE,
            variants=[
                ProductVariant(size=spec.size, price=spec.price, stock=spec.stock, sold=0)
                for spec in _dedupe_specs(variants)
            ],
        )
        db.add(product)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("catalog.product_created", product_id=str(product.id), keyword=keyword)
    return await get_product(db, product.id)


async def update_product(
    db: AsyncSession,
    product: Product,
    fields: dict[str, Any],
    variants: Iterable[VariantSpec] | None = None,
    keep_stock: bool = False,
) -> Product:
    """Apply field changes and, when given, a full variant replacement."""
    try:
        if "keyword" in fields and fields["keyword"] is not None:
            fields["keyword"] = normalize_keyword(fields["keyword"])
        target_keyword = fields.get("keyword") or product.keyword
        target_status = fields.get("status") or product.status
        if target_status == ACTIVE and (
            target_keyword != product.keyword or product.status != ACTIVE
        ):
            await ensure_keyword_available(db, target_keyword, exclude_product_id=product.id)

        for field, value in fields.items():
            setattr(product, field, value)
        if variants is not None:
            await replace_variants(db, product, variants, keep_stock=keep_stock)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("catalog.product_updated", product_id=str(product.id), fields=sorted(fields))
    return await get_product(db, product.id)


async def upsert_product_by_keyword(
    db: AsyncSession,
    *,
    keyword: str,
    name: str,
    description: str | None,
    variants: Iterable[VariantSpec],
    keep_stock: bool = False,
) -> tuple[Product, bool]:
    """Update the ACTIVE product owning `keyword`, or create one.

    Returns (product, created). `keep_stock` preserves the stock ceilings of
    surviving sizes on update.
    """
    keyword = normalize_keyword(keyword)
    existing = await get_active_product(db, keyword)
    if existing is None:
        product = await create_product(
            db, keyword=keyword, name=name, description=description, variants=variants
        )
        return product, True

    product = await update_product(
        db,
        existing,
        {"name": name, "description": description},
        variants=variants,
        keep_stock=keep_stock,
    )
    return product, False


async def delete_products(db: AsyncSession, product_ids: list[uuid.UUID]) -> int:
    """Hard-delete products together with their variants and orders."""
    try:
        result = await db.execute(select(Product.id).where(Product.id.in_(product_ids)))
        found = list(result.scalars().all())
        if found:
            await db.execute(
                delete(Order).where(Order.product_id.in_(found)).execution_options(synchronize_session=False)
            )
            await db.execute(
                delete(ProductVariant)
                .where(ProductVariant.product_id.in_(found))
                .execution_options(synchronize_session=False)
            )
            await db.execute(
                delete(Product).where(Product.id.in_(found)).execution_options(synchronize_session=False)
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("catalog.products_deleted", count=len(found))
    return len(found)
