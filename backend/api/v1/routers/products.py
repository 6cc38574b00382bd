"""
Products Router — CRUD for the product catalog and its variants.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_db
from api.schemas import CamelModel, CountResponse
from catalog.products import (
    DuplicateKeywordError,
    VariantSpec,
    create_product,
    delete_products,
    get_product,
    list_products,
    update_product,
)

router = APIRouter(prefix="/api/products", tags=["products"])

NULLABLE_FIELDS = {"description", "image_url"}


# ─── Schemas ────────────────────────────────────────────────────────────────


class VariantIn(CamelModel):
    size: str = Field(..., min_length=1, max_length=50)
    price: int = Field(0, ge=0)
    stock: int | None = Field(None, ge=0)

    def to_spec(self) -> VariantSpec:
        return VariantSpec(size=self.size, price=self.price, stock=self.stock)


class ProductCreate(CamelModel):
    keyword: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = None
    variants: list[VariantIn] = []


class ProductUpdate(CamelModel):
    keyword: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    image_url: str | None = None
    status: Literal["ACTIVE", "ARCHIVED"] | None = None
    variants: list[VariantIn] | None = None


class ProductIds(CamelModel):
    ids: list[UUID] = Field(..., min_length=1)


class VariantResponse(CamelModel):
    id: UUID
    product_id: UUID
    size: str
    price: int
    stock: int | None
    sold: int


class ProductResponse(CamelModel):
    id: UUID
    keyword: str
    name: str
    description: str | None
    image_url: str | None
    status: str
    created_at: datetime
    updated_at: datetime
    variants: list[VariantResponse]


def _conflict(keyword: str) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=f"Keyword '{keyword}' is already used by an active product",
    )


# ─── Endpoints ──────────────────────────────────────────────────────────────


@router.get("", response_model=list[ProductResponse])
async def get_products(
    status: Literal["ACTIVE", "ARCHIVED"] | None = None,
    db: AsyncSession = Depends(get_db),
):
    """List products (newest first) with their variants."""
    return await list_products(db, status=status)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_single_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    product = await get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("", response_model=ProductResponse, status_code=201)
async def post_product(
    body: ProductCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create an ACTIVE product. 409 if another ACTIVE product owns the keyword."""
    try:
        return await create_product(
            db,
            keyword=body.keyword,
            name=body.name,
            description=body.description,
            image_url=body.image_url,
            variants=[v.to_spec() for v in body.variants],
        )
    except DuplicateKeywordError as exc:
        raise _conflict(exc.keyword)
    except IntegrityError:
        raise _conflict(body.keyword.strip().upper())


@router.patch("/{product_id}", response_model=ProductResponse)
async def patch_product(
    product_id: UUID,
    body: ProductUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update product fields; `variants`, when present, replaces the whole set."""
    product = await get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    fields = {
        field: value
        for field, value in body.model_dump(exclude_unset=True, exclude={"variants"}).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    variants = [v.to_spec() for v in body.variants] if body.variants is not None else None
    try:
        return await update_product(db, product, fields, variants=variants)
    except DuplicateKeywordError as exc:
        raise _conflict(exc.keyword)
    except IntegrityError:
        raise _conflict(fields.get("keyword") or "")


@router.delete("/{product_id}", status_code=204)
async def delete_single_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete a product together with its variants and orders."""
    if not await delete_products(db, [product_id]):
        raise HTTPException(status_code=404, detail="Product not found")


@router.delete("", response_model=CountResponse)
async def delete_many_products(
    body: ProductIds,
    db: AsyncSession = Depends(get_db),
):
    return CountResponse(count=await delete_products(db, body.ids))
