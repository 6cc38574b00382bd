"""
GroupBuy Database Models

5 tables for the chat-driven group-buy ordering platform.

Tables:
  1. users             - Chat identities (customers and admins)
  2. products          - Catalog entries keyed by a chat keyword
  3. product_variants  - Size/price/stock rows owned by a product (+ sold counter)
  4. orders            - Orders placed over chat or by admin tooling
  5. system_settings   - Generic key/value settings (ordering gate)

Keyword uniqueness is enforced only among ACTIVE products through a
partial unique index, so archived products may reuse a keyword.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    text,
    types,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


from sqlalchemy.orm import relationship

from db.session import Base

# ─── Vocabularies ───────────────────────────────────────────────────────────

USER_ROLES = ("CUSTOMER", "ADMIN")
PRODUCT_STATUSES = ("ACTIVE", "ARCHIVED")
ORDER_STATUSES = (
    "PENDING",
    "CONFIRMED",
    "PURCHASED",
    "SHIPPING",
    "ARRIVED",
    "OUT_OF_STOCK",
    "COMPLETED",
    "CANCELLED",
)
CANCELLED = "CANCELLED"

# Statuses that count toward a customer's running total in chat queries.
IN_PROGRESS_STATUSES = ("PENDING", "CONFIRMED", "PURCHASED", "SHIPPING", "ARRIVED")


def _in_clause(values: tuple[str, ...]) -> str:
    return ", ".join(f"'{v}'" for v in values)


# ─── 1. Users ───────────────────────────────────────────────────────────────


class User(Base):
    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    line_id = Column(String(64), nullable=False, unique=True)
    name = Column(String(255))
    avatar_url = Column(Text)
    role = Column(String(20), nullable=False, default="CUSTOMER")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (CheckConstraint(f"role IN ({_in_clause(USER_ROLES)})", name="ck_user_role"),)

    orders = relationship("Order", back_populates="user")


# ─── 2. Products ────────────────────────────────────────────────────────────


class Product(Base):
    __tablename__ = "products"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    keyword = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    image_url = Column(Text)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(f"status IN ({_in_clause(PRODUCT_STATUSES)})", name="ck_product_status"),
        Index(
            "uq_products_active_keyword",
            "keyword",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.created_at",
    )
    orders = relationship("Order", back_populates="product", passive_deletes=True)


# ─── 3. Product Variants ────────────────────────────────────────────────────


class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    product_id = Column(GUID(), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    size = Column(String(50), nullable=False)
    price = Column(Integer, nullable=False, default=0)
    stock = Column(Integer)  # NULL = unlimited
    sold = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("product_id", "size", name="uq_variant_product_size"),
        CheckConstraint("price >= 0", name="ck_variant_price"),
    )

    product = relationship("Product", back_populates="variants")


# ─── 4. Orders ──────────────────────────────────────────────────────────────


class Order(Base):
    __tablename__ = "orders"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(GUID(), ForeignKey("users.id"), nullable=False)
    product_id = Column(GUID(), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    size = Column(String(50))
    quantity = Column(Integer, nullable=False, default=1)
    total_amount = Column(Integer, nullable=False, default=0)
    # Unconstrained: legacy ARCHIVE/DELETED rows are migrated by scripts/fix_archive_status.py
    status = Column(String(20), nullable=False, default="CONFIRMED")
    is_archived = Column(Boolean, nullable=False, default=False)
    delete_reason = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_quantity"),
        Index("ix_orders_status_archived", "status", "is_archived"),
        Index("ix_orders_user", "user_id"),
        Index("ix_orders_product_size", "product_id", "size"),
    )

    user = relationship("User", back_populates="orders")
    product = relationship("Product", back_populates="orders")


# ─── 5. System Settings ─────────────────────────────────────────────────────


class SystemSetting(Base):
    __tablename__ = "system_settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
