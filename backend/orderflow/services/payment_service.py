# Overview: Paid transition for an order: store patch, day ledger entry, commerce mirror, chat notifications.

"""
Payment Finalizer

WHY: Customers pay by QR transfer outside the shop. An operator confirms the
payment, and from then on the order must stop receiving reminders, show up
in the day's paid list and reach the supplier.

FLOW (finalize_paid):
1. Load the order (OrderNotFoundError if unknown)
2. Compute the paid patch (LifecycleError unless pending_payment / paid)
3. On a real pending_payment -> paid transition, patch the order and append
   today's paid_order_items row in one commit (both or neither)
4. Re-marking an already-paid order re-applies the patch; if the order has
   no ledger row at all, one is recorded for the day it was paid
5. Mirror "processing" to WooCommerce (best-effort)
6. Send the supplier summary and today's paid list (best-effort)

Marking an already-paid order again re-applies the same fields, adds no
second ledger row when one exists and does not re-send an already
delivered supplier summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from flask import current_app

from ..extensions import db
from ..models import Order, PaidOrderItem
from orderflow.time_utils import local_day, utcnow
from . import messages, order_store
from .gateways import mirror_order_status, notify
from .order_state import STATUS_PAID, STATUS_PENDING_PAYMENT, OrderState, mark_paid


@dataclass
class PaymentOutcome:
    order: Order
    newly_paid: bool
    day: date
    ledger_entry: PaidOrderItem | None = None
    commerce_mirrored: bool = False
    supplier_notified: bool = False
    day_list_text: str = ""

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(),
            "newly_paid": self.newly_paid,
            "day": self.day.isoformat(),
            "ledger_entry": self.ledger_entry.to_dict() if self.ledger_entry else None,
            "commerce_mirrored": self.commerce_mirrored,
            "supplier_notified": self.supplier_notified,
        }


def ledger_entry_fields(order: Order, day: date, now: datetime) -> dict:
    """Display snapshot copied onto the day's paid_order_items row."""
    return {
        "day": day,
        "order_id": order.order_id,
        "name": order.name or "",
        "amount": order.amount or 0,
        "sku": order.sku or "",
        "sizes": order.sizes or "",
        "technique": order.technique or "",
        "created_at": now,
    }


def day_list_text(day: date) -> str:
    rows = order_store.list_ledger_by_day(day)
    return messages.ledger_list(day, rows, tz_name=current_app.config["TIMEZONE"])


def finalize_paid(order_id: str, *, chat_id=None, now: datetime | None = None) -> PaymentOutcome:
    """
    Apply the paid transition and its side effects.

    Raises:
        OrderNotFoundError: order_id unknown
        LifecycleError: order is not pending_payment / paid
    """
    now = now or utcnow()
    config = current_app.config
    tz_name = config["TIMEZONE"]

    order = order_store.require_order(order_id)
    state = OrderState.from_order(order)
    patch = mark_paid(state, now)
    newly_paid = state.status == STATUS_PENDING_PAYMENT
    day = local_day(tz_name, now)
    outcome = PaymentOutcome(order=order, newly_paid=newly_paid, day=day)

    if newly_paid:
        order, outcome.ledger_entry = order_store.patch_with_ledger_entry(
            order.order_id, patch, ledger_entry_fields(order, day, now)
        )
    else:
        order = order_store.patch_by_order_id(order.order_id, patch)
        if not order_store.has_ledger_entry(order.order_id):
            paid_day = local_day(tz_name, order.paid_at or now)
            current_app.logger.warning("Paid order %s had no ledger row; recording it for %s", order.order_id, paid_day)
            outcome.ledger_entry = order_store.insert_ledger_entry(ledger_entry_fields(order, paid_day, now))
    outcome.order = order
    current_app.logger.info("Order %s marked paid (newly_paid=%s)", order.order_id, newly_paid)

    outcome.commerce_mirrored = mirror_order_status(order.order_id, STATUS_PAID)

    supplier_channel = config.get("SUPPLIER_CHAT_ID") or chat_id
    if newly_paid or not order.supplier_sent:
        text = messages.supplier_summary(
            order,
            shop_name=config.get("SHOP_NAME", ""),
            shop_phone=config.get("SHOP_PHONE", ""),
        )
        outcome.supplier_notified = notify(supplier_channel, text)
        if outcome.supplier_notified:
            order = order_store.patch_by_order_id(order.order_id, {"supplier_sent": True})
            outcome.order = order

    try:
        outcome.day_list_text = day_list_text(day)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to build paid list for %s", day)
        outcome.day_list_text = "Today's paid list couldn't be loaded."
    notify(chat_id, outcome.day_list_text)
    return outcome
