"""
Test Configuration — Fixtures for async DB, test client, fake chat client and seed data.

Each test gets a fresh in-memory SQLite database. Environment defaults are
set before the app is imported so settings resolve to a test profile.
"""

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LINE_CHANNEL_SECRET", "test-channel-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import json
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.deps import get_db, get_line_client, get_session_factory
from api.main import app
from core.config import get_settings
from core.security import compute_signature
from db.models import Order, Product, ProductVariant, User
from db.session import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_LINE_ID = "U-admin-0001"
CUSTOMER_LINE_ID = "U-customer-0001"


class FakeLineClient:
    """Records replies instead of calling the LINE platform."""

    def __init__(self, profiles: dict[str, dict[str, Any]] | None = None):
        self.replies: list[tuple[str, str]] = []
        self.profiles = profiles or {}

    async def reply_text(self, reply_token: str, text: str) -> None:
        self.replies.append((reply_token, text))

    async def get_profile(self, user_id: str) -> dict[str, Any]:
        return self.profiles.get(user_id, {"displayName": f"name-{user_id}", "pictureUrl": None})

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.replies]


@pytest.fixture
async def test_engine():
    """Create a test database engine and build all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def line_client():
    return FakeLineClient()


@pytest.fixture
async def client(test_db, session_factory, line_client):
    """Create an async test client with dependency overrides."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_line_client] = lambda: line_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def seeded_db(test_db):
    """Seed a customer, an admin, one sized product (M stock 5 / sold 4) and one unlimited product.

    Returns plain ids and values; ORM instances may be expired by later rollbacks.
    """
    customer = User(line_id=CUSTOMER_LINE_ID, name="小明", role="CUSTOMER")
    admin = User(line_id=ADMIN_LINE_ID, name="Admin", role="ADMIN")
    test_db.add_all([customer, admin])

    shirt = Product(
        keyword="P01",
        name="adidas 唐衣-紅",
        status="ACTIVE",
        variants=[
            ProductVariant(size="S", price=590, stock=10, sold=0),
            ProductVariant(size="M", price=590, stock=5, sold=4),
            ProductVariant(size="L", price=650, stock=None, sold=0),
        ],
    )
    bag = Product(
        keyword="A01",
        name="帆布托特包",
        status="ACTIVE",
        variants=[ProductVariant(size="F", price=350, stock=None, sold=0)],
    )
    test_db.add_all([shirt, bag])
    await test_db.commit()

    variants = {v.size: v.id for v in shirt.variants}
    return {
        "customer_id": customer.id,
        "admin_id": admin.id,
        "shirt_id": shirt.id,
        "bag_id": bag.id,
        "variant_ids": variants,
        "bag_variant_id": bag.variants[0].id,
    }


async def add_order(
    db: AsyncSession,
    *,
    user_id,
    product_id,
    size: str,
    quantity: int,
    price: int,
    status: str = "CONFIRMED",
    is_archived: bool = False,
):
    """Insert an order row directly (the sold counter is the caller's business)."""
    order = Order(
        user_id=user_id,
        product_id=product_id,
        size=size,
        quantity=quantity,
        total_amount=price * quantity,
        status=status,
        is_archived=is_archived,
    )
    db.add(order)
    await db.commit()
    return order.id


async def sold_of(db: AsyncSession, variant_id) -> int:
    variant = await db.get(ProductVariant, variant_id, populate_existing=True)
    return variant.sold


def signed_headers(body: bytes) -> dict[str, str]:
    secret = get_settings().line_channel_secret
    return {
        "content-type": "application/json",
        "x-line-signature": compute_signature(body, secret),
    }


def text_event(text: str, user_id: str = CUSTOMER_LINE_ID, reply_token: str = "reply-token") -> dict:
    return {
        "type": "message",
        "replyToken": reply_token,
        "source": {"type": "user", "userId": user_id},
        "message": {"type": "text", "id": "1", "text": text},
    }


def webhook_body(*events: dict) -> bytes:
    return json.dumps({"destination": "Uxxxx", "events": list(events)}, ensure_ascii=False).encode()
