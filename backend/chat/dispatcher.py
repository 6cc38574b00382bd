"""
Chat Event Dispatcher — turns LINE webhook events into catalog and order actions.

Each event in a webhook payload is handled concurrently in its own database
session. Persisted state is committed before the reply is sent, and a failed
reply is logged, never rolled back: the customer's order stands even if the
confirmation message is lost.
"""

import asyncio
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog.products import DuplicateKeywordError, VariantSpec, get_active_product, upsert_product_by_keyword
from chat.commands import (
    CatalogUploadIntent,
    Intent,
    OrderIntent,
    QueryIntent,
    Unrecognized,
    interpret,
)
from chat.line_client import LineAPIError, LineClient
from db.models import Product, User
from orders.gate import is_ordering_enabled
from orders.lifecycle import OrderOutcome, OrderRejection, create_order
from orders.queries import in_progress_orders

logger = structlog.get_logger()

ADMIN = "ADMIN"


# ─── Reply texts ────────────────────────────────────────────────────────────


def order_confirmed_text(product: Product, outcome: OrderOutcome) -> str:
    order = outcome.order
    return (
        f"✅ 訂單已確認！\n\n"
        f"商品: {product.name}\n"
        f"尺寸: {order.size}\n"
        f"數量: {order.quantity}\n"
        f"總金額: ${order.total_amount}\n"
        f"謝謝您的購買！"
    )


def product_not_found_text(keyword: str) -> str:
    return f"❓ 找不到代號為 {keyword} 的商品。"


def size_not_found_text(product: Product, requested_size: str) -> str:
    sizes = "、".join(v.size for v in product.variants) or "無"
    return f"❓ {product.name} 沒有尺寸「{requested_size or 'F'}」。\n可選尺寸: {sizes}"


def sold_out_text(product: Product, outcome: OrderOutcome) -> str:
    size = outcome.variant.size if outcome.variant is not None else outcome.requested_size
    return f"😢 很抱歉，{product.name} ({size}) 已售完或庫存不足。"


def upload_succeeded_text(product: Product) -> str:
    sizes = [v.size for v in product.variants]
    return (
        f"✅ 商品上架成功！\n"
        f"{product.name} ({product.keyword})\n"
        f"尺寸: {', '.join(sizes)}\n\n"
        f"👇 發送以下文字下單:\n"
        f"---------------\n"
        f"代號：{product.keyword}\n"
        f"數量：1\n"
        f"尺寸：{sizes[0] if sizes else 'F'}"
    )


UPLOAD_FAILED_TEXT = "❌ 商品上架失敗，請檢查格式或關鍵字是否重複。"
NO_ORDERS_TEXT = "📋 目前沒有進行中的訂單。"


# ─── Users ──────────────────────────────────────────────────────────────────


async def find_user(db: AsyncSession, line_id: str) -> User | None:
    result = await db.execute(select(User).where(User.line_id == line_id))
    return result.scalar_one_or_none()


async def get_or_create_user(db: AsyncSession, line_id: str, line_client: LineClient) -> User:
    """Return the user for a chat identity, creating it on first contact.

    Two first messages from the same identity may race; the loser of the
    unique insert re-reads the winner's row.
    """
    user = await find_user(db, line_id)
    if user is not None:
        return user

    try:
        user = User(line_id=line_id, role="CUSTOMER")
        db.add(user)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        user = await find_user(db, line_id)
        if user is None:
            raise
        return user

    try:
        profile = await line_client.get_profile(line_id)
    except LineAPIError as exc:
        logger.warning("chat.profile_fetch_failed", line_id=line_id, error=str(exc))
        return user

    user.name = profile.get("displayName")
    user.avatar_url = profile.get("pictureUrl")
    await db.commit()
    return user


# ─── Intent handlers ────────────────────────────────────────────────────────


async def _reply(line_client: LineClient, reply_token: str | None, text: str) -> None:
    if not reply_token:
        return
    try:
        await line_client.reply_text(reply_token, text)
    except LineAPIError as exc:
        logger.warning("chat.reply_failed", error=str(exc))


async def handle_order(
    db: AsyncSession,
    intent: OrderIntent,
    line_id: str,
    reply_token: str | None,
    line_client: LineClient,
) -> OrderOutcome | None:
    if not await is_ordering_enabled(db):
        logger.info("chat.order_dropped_gate_closed", keyword=intent.keyword)
        return None

    product = await get_active_product(db, intent.keyword)
    if product is None:
        logger.info("order.rejected", reason=OrderRejection.PRODUCT_NOT_FOUND.value, keyword=intent.keyword)
        await _reply(line_client, reply_token, product_not_found_text(intent.keyword))
        return OrderOutcome(rejection=OrderRejection.PRODUCT_NOT_FOUND)

    user = await get_or_create_user(db, line_id, line_client)
    # Losing the user insert race rolls back, which expires the loaded product.
    product = await get_active_product(db, intent.keyword)
    outcome = await create_order(db, user, product, intent.size, intent.quantity)

    if outcome.rejection is OrderRejection.PRODUCT_NOT_FOUND:
        text = product_not_found_text(intent.keyword)
    elif outcome.accepted:
        text = order_confirmed_text(product, outcome)
    elif outcome.rejection is OrderRejection.OUT_OF_STOCK:
        text = sold_out_text(product, outcome)
    else:
        text = size_not_found_text(product, outcome.requested_size)
    await _reply(line_client, reply_token, text)
    return outcome


async def handle_catalog_upload(
    db: AsyncSession,
    intent: CatalogUploadIntent,
    line_id: str,
    reply_token: str | None,
    line_client: LineClient,
) -> Product | None:
    user = await find_user(db, line_id)
    if user is None or user.role != ADMIN:
        logger.info("chat.upload_ignored_non_admin", line_id=line_id)
        return None

    try:
        product, created = await upsert_product_by_keyword(
            db,
            keyword=intent.keyword,
            name=intent.name,
            description=intent.description,
            variants=[VariantSpec(size=entry.size, price=entry.price) for entry in intent.sizes],
            keep_stock=True,
        )
    except (DuplicateKeywordError, IntegrityError) as exc:
        logger.warning("chat.upload_failed", keyword=intent.keyword, error=str(exc))
        await _reply(line_client, reply_token, UPLOAD_FAILED_TEXT)
        return None

    logger.info("chat.upload_applied", keyword=product.keyword, created=created)
    await _reply(line_client, reply_token, upload_succeeded_text(product))
    return product


async def handle_query(
    db: AsyncSession,
    line_id: str,
    reply_token: str | None,
    line_client: LineClient,
) -> int:
    """Reply with the sender's in-progress orders and their grand total."""
    user = await find_user(db, line_id)
    orders = await in_progress_orders(db, user.id) if user is not None else []
    if not orders:
        await _reply(line_client, reply_token, NO_ORDERS_TEXT)
        return 0

    total = sum(order.total_amount for order in orders)
    lines = ["📋 您的訂單:"]
    for order in orders:
        lines.append(f"• {order.product.name} ({order.size or 'F'}) x{order.quantity} = ${order.total_amount}")
    lines.append(f"\n總金額: ${total}")
    await _reply(line_client, reply_token, "\n".join(lines))
    return total


# ─── Dispatch ───────────────────────────────────────────────────────────────


def _text_message_fields(event: dict[str, Any]) -> tuple[str, str, str | None] | None:
    if event.get("type") != "message":
        return None
    message = event.get("message") or {}
    if message.get("type") != "text":
        return None
    line_id = (event.get("source") or {}).get("userId")
    if not line_id:
        return None
    return message.get("text") or "", line_id, event.get("replyToken")


async def handle_event(
    event: dict[str, Any],
    session_factory: async_sessionmaker[AsyncSession],
    line_client: LineClient,
) -> Intent | None:
    fields = _text_message_fields(event)
    if fields is None:
        return None
    text, line_id, reply_token = fields
    intent = interpret(text)

    if isinstance(intent, Unrecognized):
        return intent

    async with session_factory() as db:
        if isinstance(intent, OrderIntent):
            await handle_order(db, intent, line_id, reply_token, line_client)
        elif isinstance(intent, CatalogUploadIntent):
            await handle_catalog_upload(db, intent, line_id, reply_token, line_client)
        elif isinstance(intent, QueryIntent):
            await handle_query(db, line_id, reply_token, line_client)
        else:
            raise TypeError(f"Unhandled intent {type(intent).__name__}")
    return intent


async def handle_events(
    events: list[dict[str, Any]],
    session_factory: async_sessionmaker[AsyncSession],
    line_client: LineClient,
) -> int:
    """Process a webhook payload's events concurrently. Returns the failure count."""
    results = await asyncio.gather(
        *(handle_event(event, session_factory, line_client) for event in events),
        return_exceptions=True,
    )
    failures = 0
    for event, result in zip(events, results):
        if isinstance(result, Exception):
            failures += 1
            logger.error(
                "chat.event_failed",
                event_type=event.get("type"),
                error=str(result),
                exc_info=result,
            )
    return failures
