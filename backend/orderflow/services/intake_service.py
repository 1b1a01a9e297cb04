# Overview: Maps an inbound commerce webhook payload to a new pending order.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from flask import current_app

from ..extensions import db
from orderflow.time_utils import utcnow
from . import order_store
from .item_normalizer import aggregate_items, decode_json, normalize_items, serialize_items, to_positive_int, to_text
from .order_state import NEXT_REMINDER_24, STATUS_PENDING_PAYMENT


RESULT_OK = "ok"
RESULT_IGNORED = "ignored"
RESULT_ERROR = "error"

BILLING_KEYS = ("billing_address", "billing")


@dataclass
class IntakeResult:
    result: str
    order_id: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict:
        return {"result": self.result, "order_id": self.order_id, "reason": self.reason}


def _unwrap_order(payload: Any) -> dict | None:
    payload = decode_json(payload)
    if not isinstance(payload, dict) or not payload:
        return None
    inner = decode_json(payload.get("order"))
    if isinstance(inner, dict) and inner:
        return inner
    return payload


def _billing(order: dict, *names: str) -> str:
    """First non-empty value of any of `names` across the billing blocks."""
    for block_key in BILLING_KEYS:
        block = order.get(block_key)
        if not isinstance(block, dict):
            continue
        for name in names:
            text = to_text(block.get(name))
            if text:
                return text
    return ""


def _customer_name(order: dict) -> str:
    full = " ".join(p for p in (_billing(order, "first_name"), _billing(order, "last_name")) if p)
    return full or _billing(order, "name")


def _amount(order: dict) -> Decimal:
    raw = order.get("total")
    if raw in (None, ""):
        raw = order.get("total_amount")
    try:
        return Decimal(str(raw)) if raw not in (None, "") else Decimal("0")
    except (InvalidOperation, ValueError):
        return Decimal("0")


def build_order_fields(order: dict, now: datetime) -> dict:
    """Column values for a freshly placed order."""
    items = normalize_items(order)
    aggregate = aggregate_items(items)
    if items:
        quantity = aggregate.quantity
    else:
        quantity = to_positive_int(order.get("total_line_items_quantity")) or 1

    return {
        "order_id": to_text(order.get("id")) or to_text(order.get("order_id")) or "",
        "name": _customer_name(order),
        "phone": _billing(order, "phone"),
        "email": _billing(order, "email"),
        "address": _billing(order, "address_1", "address"),
        "state": _billing(order, "state"),
        "pincode": _billing(order, "postcode", "pincode"),
        "amount": _amount(order),
        "product": aggregate.product,
        "sku": aggregate.sku,
        "sizes": aggregate.sizes,
        "technique": aggregate.technique,
        "quantity": quantity,
        "items": serialize_items(items),
        "status": STATUS_PENDING_PAYMENT,
        "created_at": now,
        "paid_at": None,
        "next_message": NEXT_REMINDER_24,
    }


def ingest_order(payload: Any, *, now: datetime | None = None) -> IntakeResult:
    """
    Persist one webhook order. Never raises: the commerce platform retries on
    non-2xx answers, so every failure is logged and reported as a result.
    """
    try:
        order = _unwrap_order(payload)
        if order is None:
            return IntakeResult(RESULT_IGNORED, reason="empty payload")

        fields = build_order_fields(order, now or utcnow())
        order_id = fields["order_id"]
        if not order_id:
            return IntakeResult(RESULT_IGNORED, reason="missing order id")
        if order_store.get_by_order_id(order_id) is not None:
            current_app.logger.info("Webhook for known order %s ignored", order_id)
            return IntakeResult(RESULT_IGNORED, order_id=order_id, reason="duplicate order")

        order_store.insert(fields)
        current_app.logger.info("Order %s stored (%s item(s))", order_id, fields["quantity"])
        return IntakeResult(RESULT_OK, order_id=order_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Webhook order intake failed")
        return IntakeResult(RESULT_ERROR, reason="internal error")
