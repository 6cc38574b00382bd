"""
Order CSV export in the spreadsheet layout the purchasing team works from.

UTF-8 with a leading BOM so Excel picks the encoding up. Column order is
fixed; the fulfilment booleans are not tracked in-system and export FALSE.
"""

import csv
import io
from datetime import date
from typing import Iterable

from db.models import CANCELLED, Order

BOM = "\ufeff"

CSV_HEADER = [
    "訂單日期",  # date
    "訂購平台",  # platform
    "訂購人",  # buyer
    "品牌",  # brand
    "編號",  # code
    "訂購品項",  # item
    "尺寸",  # size
    "件數",  # qty
    "售價",  # unit price
    "抽獎編號",  # lottery #
    "總金額",  # total
    "庫存",  # stock
    "寄貨方式",  # shipping method
    "付款方式",  # payment method
    "已到貨",  # arrived
    "已出貨",  # shipped
    "已叫貨",  # ordered
    "已入帳",  # paid
    "備註",  # note
]

CANCELLED_NOTE = "取消"


def unit_price(order: Order) -> int:
    if order.quantity <= 0:
        return 0
    return round(order.total_amount / order.quantity)


def order_note(order: Order) -> str:
    if order.status == CANCELLED:
        return order.delete_reason or CANCELLED_NOTE
    return order.status


def order_row(order: Order, platform: str) -> list:
    return [
        order.created_at.strftime("%Y/%m/%d"),
        platform,
        order.user.name or "",
        "",
        order.product.keyword,
        order.product.name,
        order.size or "F",
        order.quantity,
        unit_price(order),
        "",
        order.total_amount,
        "",
        "",
        "",
        "FALSE",
        "FALSE",
        "FALSE",
        "FALSE",
        order_note(order),
    ]


def render_orders_csv(orders: Iterable[Order], platform: str) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for order in orders:
        writer.writerow(order_row(order, platform))
    return BOM + buffer.getvalue()


def export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"orders_{today.isoformat()}.csv"
