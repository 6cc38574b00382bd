"""
Command Interpreter — classify an inbound chat text into an intent.

Customers and admins talk to the shop with line-oriented templates:

    Order (customer)            Catalog upload (admin)
    ----------------            ----------------------
    代號：N01                    連線商品-1
    數量：2                      代號：N01
    尺寸：L                      商品名：adidas 唐衣-紅
                                size：S:590、M:590、L:650
                                商品描述：無

Labels accept both the ASCII ":" and the full-width "：" separator.
Anything that is not an upload, an order or the running-total query is
Unrecognized and gets no reply.
"""

import re
from dataclasses import dataclass, field
from typing import Union

UPLOAD_TRIGGER = "連線商品"
QUERY_KEYWORD = "查詢訂單"

KEYWORD_LABEL = "代號"
QUANTITY_LABEL = "數量"
SIZE_LABELS = ("尺寸",)

UPLOAD_NAME_LABEL = "商品名"
UPLOAD_SIZES_LABELS = ("size", "尺寸")
UPLOAD_DESCRIPTION_LABEL = "商品描述"
UPLOAD_PRICE_LABEL = "價格"
NO_DESCRIPTION = "無"
FREE_SIZE = "F"

SEPARATORS = (":", "：")

# Larger quantities are treated as typos and fall back to 1.
MAX_ORDER_QUANTITY = 999

_SIZE_LIST_SPLIT = re.compile(r"[\s,，、/]+")
_SIZE_PRICE_SPLIT = re.compile(r"[:：]")
# "S : 590" -> "S:590", so the whitespace split never separates a size from its price.
_SPACED_SIZE_PRICE = re.compile(r"\s*[:：]\s*")
_LEADING_INT = re.compile(r"\d+")


# ─── Intents ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OrderIntent:
    keyword: str
    quantity: int = 1
    size: str = ""


@dataclass(frozen=True)
class SizeEntry:
    size: str
    price: int = 0


@dataclass(frozen=True)
class CatalogUploadIntent:
    keyword: str
    name: str
    description: str | None = None
    sizes: tuple[SizeEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class QueryIntent:
    pass


@dataclass(frozen=True)
class Unrecognized:
    pass


Intent = Union[OrderIntent, CatalogUploadIntent, QueryIntent, Unrecognized]


# ─── Field extraction ───────────────────────────────────────────────────────


def field_value(line: str, labels: tuple[str, ...]) -> str | None:
    """Value after `<label><sep>` in `line`, or None if no label matches."""
    folded = line.lower()
    for label in labels:
        for sep in SEPARATORS:
            marker = f"{label}{sep}".lower()
            idx = folded.find(marker)
            if idx != -1:
                return line[idx + len(marker):].strip()
    return None


def has_field(text: str, label: str) -> bool:
    return any(f"{label}{sep}" in text for sep in SEPARATORS)


def parse_quantity(raw: str | None) -> int:
    """Leading integer in 1..MAX_ORDER_QUANTITY ("2", "2件", "２"); anything else falls back to 1."""
    match = _LEADING_INT.match((raw or "").strip())
    if not match:
        return 1
    quantity = int(match.group())
    return quantity if 0 < quantity <= MAX_ORDER_QUANTITY else 1


def parse_price(raw: str | None, default: int = 0) -> int:
    digits = re.sub(r"[^\d]", "", raw or "")
    return int(digits) if digits else default


def parse_size_list(raw: str, default_price: int = 0) -> tuple[SizeEntry, ...]:
    """Split "S:590、M:590、L" into size entries; bare sizes take default_price."""
    entries: list[SizeEntry] = []
    seen: set[str] = set()
    for chunk in _SIZE_LIST_SPLIT.split(_SPACED_SIZE_PRICE.sub(":", raw.strip())):
        if not chunk:
            continue
        parts = _SIZE_PRICE_SPLIT.split(chunk, maxsplit=1)
        size = parts[0].strip()
        if not size or size in seen:
            continue
        price = parse_price(parts[1], default_price) if len(parts) == 2 else default_price
        seen.add(size)
        entries.append(SizeEntry(size=size, price=price))
    return tuple(entries)


# ─── Parsers ────────────────────────────────────────────────────────────────


def parse_order(text: str) -> OrderIntent | None:
    keyword = ""
    quantity = 1
    size = ""
    for line in text.splitlines():
        value = field_value(line, (KEYWORD_LABEL,))
        if value is not None:
            keyword = value.upper()
            continue
        value = field_value(line, (QUANTITY_LABEL,))
        if value is not None:
            quantity = parse_quantity(value)
            continue
        value = field_value(line, SIZE_LABELS)
        if value is not None:
            size = value
    if not keyword:
        return None
    return OrderIntent(keyword=keyword, quantity=quantity, size=size)


def parse_catalog_upload(text: str) -> CatalogUploadIntent | None:
    keyword = ""
    name = ""
    description: str | None = None
    raw_sizes = ""
    default_price = 0
    for line in text.splitlines()[1:]:
        value = field_value(line, (KEYWORD_LABEL,))
        if value is not None:
            keyword = value.upper()
            continue
        value = field_value(line, (UPLOAD_NAME_LABEL,))
        if value is not None:
            name = value
            continue
        value = field_value(line, (UPLOAD_DESCRIPTION_LABEL,))
        if value is not None:
            description = None if value in ("", NO_DESCRIPTION) else value
            continue
        value = field_value(line, (UPLOAD_PRICE_LABEL,))
        if value is not None:
            default_price = parse_price(value)
            continue
        value = field_value(line, UPLOAD_SIZES_LABELS)
        if value is not None:
            raw_sizes = value
    if not keyword or not name:
        return None
    sizes = parse_size_list(raw_sizes, default_price) or (SizeEntry(size=FREE_SIZE, price=default_price),)
    return CatalogUploadIntent(keyword=keyword, name=name, description=description, sizes=sizes)


def interpret(text: str) -> Intent:
    """Classify a chat message. Never raises on malformed input."""
    text = (text or "").strip()
    if not text:
        return Unrecognized()

    if text.startswith(UPLOAD_TRIGGER):
        return parse_catalog_upload(text) or Unrecognized()

    if text == QUERY_KEYWORD:
        return QueryIntent()

    if has_field(text, KEYWORD_LABEL) and has_field(text, QUANTITY_LABEL):
        return parse_order(text) or Unrecognized()

    return Unrecognized()
