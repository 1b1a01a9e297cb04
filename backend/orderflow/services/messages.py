# Overview: Plain-text renderings of orders and ledger rows for chat channels.

from __future__ import annotations

from datetime import date

from ..models import Order, PaidOrderItem
from orderflow.time_utils import format_local
from .item_normalizer import OrderItem, deserialize_items


def _money(value) -> str:
    if value is None:
        return "0"
    number = float(value)
    return str(int(number)) if number.is_integer() else f"{number:.2f}"


def order_items(order: Order) -> list[OrderItem]:
    return deserialize_items(order.items)


def supplier_summary(order: Order, *, shop_name: str, shop_phone: str = "") -> str:
    items = order_items(order)
    sku_lines = [f"{i}. {item.sku}" for i, item in enumerate(items, start=1)]
    product_lines = [
        f"{i}. {item.name} • size: {item.size.upper()} • Technique: {item.technique}"
        for i, item in enumerate(items, start=1)
    ]
    sender = "\n".join(part for part in (shop_name, shop_phone) if part)
    return "\n".join([
        "📦 NEW PAID ORDER",
        "",
        "From:",
        sender,
        "",
        "To:",
        f"Name: {order.name}",
        f"Address: {order.address}",
        f"State: {order.state}",
        f"Pincode: {order.pincode}",
        f"Phone: {order.phone}",
        "",
        "SKU ID:",
        "\n".join(sku_lines) or "-",
        "",
        "Product:",
        "\n".join(product_lines) or "-",
        "",
        f"Quantity: {order.quantity or 1}",
        "",
        "Shipment Mode: Normal",
    ])


def ledger_list(day: date, rows: list[PaidOrderItem], *, tz_name: str) -> str:
    header = f"{day.isoformat()} paid orders 🌼\n\n"
    if not rows:
        return header + "No paid orders on this date."
    lines = []
    for idx, row in enumerate(rows, start=1):
        lines.append(
            f"{idx}. {row.name or '-'} ({row.order_id}) ₹{_money(row.amount)} | "
            f"SKU:{row.sku or '-'} | Size:{row.sizes or '-'} | Tech:{row.technique or '-'} - "
            f"{format_local(row.created_at, tz_name)}"
        )
    return header + "\n".join(lines)


def order_details(order: Order) -> str:
    lines = [
        f"📦 Order #{order.order_id}",
        "",
        f"Status: {order.status}",
        f"Name: {order.name}",
        f"Amount: ₹{_money(order.amount)}",
    ]
    if order.discounted_amount is not None:
        lines.append(f"Discounted: ₹{_money(order.discounted_amount)}")
    lines.extend([
        f"Product: {order.product}",
        f"Size: {order.sizes}",
        f"Technique: {order.technique}",
    ])
    if order.previous_status:
        lines.append(f"Restorable to: {order.previous_status}")
    return "\n".join(lines)


def delete_preview(day: date, rows: list[PaidOrderItem]) -> str:
    if not rows:
        return f"Nothing to delete for {day.isoformat()}."
    ids = ", ".join(row.order_id for row in rows)
    return (
        f"⚠️ {len(rows)} paid order(s) for {day.isoformat()} will be deleted: {ids}\n"
        "Confirm to remove them from the ledger and mark the orders deleted."
    )
