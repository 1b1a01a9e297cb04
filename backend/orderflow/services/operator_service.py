# Overview: Operator commands (paid, cancel, restore, lists, cleanup); shared by the HTTP API and the CLI.

"""
Operator Command Service

Each command returns an OperatorReply whose `message` is the text shown to
the operator; the same text is pushed to the operator chat when one is
configured or passed in. Domain failures are raised (OrderNotFoundError,
LifecycleError, ValueError) and translated by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from flask import current_app

from orderflow.time_utils import local_day, local_midnight_utc, utcnow
from . import messages, order_store, payment_service, snapshot_service
from .gateways import notify
from .order_state import STATUS_DELETED, OrderState, can_transition, complete


CANCEL_ONLY_HIDE = "only_hide"
CANCEL_FULL = "full"
VALID_CANCEL_MODES = {CANCEL_ONLY_HIDE, CANCEL_FULL}


@dataclass
class OperatorReply:
    message: str
    ok: bool = True
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"ok": self.ok, "message": self.message, **self.data}


def operator_channel(chat_id=None):
    return chat_id or current_app.config.get("OPERATOR_CHAT_ID")


def tell(chat_id, message: str) -> bool:
    return notify(operator_channel(chat_id), message)


def _reply(chat_id, message: str, *, ok: bool = True, **data) -> OperatorReply:
    tell(chat_id, message)
    return OperatorReply(message=message, ok=ok, data=data)


def _today(now: datetime | None = None) -> date:
    return local_day(current_app.config["TIMEZONE"], now)


def _attempted(flag: bool) -> str:
    return "updated" if flag else "not updated (see logs)"


# =============================================================================
# LIFECYCLE COMMANDS
# =============================================================================

def mark_paid(order_id: str, *, chat_id=None, now: datetime | None = None) -> OperatorReply:
    outcome = payment_service.finalize_paid(order_id, chat_id=operator_channel(chat_id), now=now)
    if outcome.newly_paid:
        message = (
            f"✅ Order {order_id} marked paid.\n"
            f"WooCommerce → processing: {_attempted(outcome.commerce_mirrored)}\n"
            "Order store updated.\n"
            "Customer thank-you will be sent automatically."
        )
    else:
        message = f"ℹ️ Order {order_id} was already paid. Nothing new was recorded."
    return _reply(chat_id, message, **outcome.to_dict())


def cancel(order_id: str, mode: str, *, chat_id=None) -> OperatorReply:
    if mode not in VALID_CANCEL_MODES:
        raise ValueError(f"Unknown cancel action '{mode}'. Use one of: {', '.join(sorted(VALID_CANCEL_MODES))}")

    if mode == CANCEL_ONLY_HIDE:
        outcome = snapshot_service.hide_only(order_id)
        return _reply(chat_id, f"✅ Order {order_id} hidden from today's list.",
                      order=outcome.order.to_dict(), changed=outcome.changed)

    outcome = snapshot_service.cancel_full(order_id)
    return _reply(
        chat_id,
        f"❌ Order {order_id} cancelled. WooCommerce: {_attempted(outcome.commerce_mirrored)}. Restore is available.",
        order=outcome.order.to_dict(),
        changed=outcome.changed,
        commerce_mirrored=outcome.commerce_mirrored,
    )


def restore(order_id: str, *, chat_id=None) -> OperatorReply:
    outcome = snapshot_service.restore(order_id)
    if not outcome.changed:
        return _reply(chat_id, f"No previous state found for order {order_id}. Cannot restore.",
                      ok=False, order=outcome.order.to_dict(), restored=False)
    return _reply(
        chat_id,
        f"♻️ Order {order_id} restored to {outcome.order.status}.",
        order=outcome.order.to_dict(),
        restored=True,
        commerce_mirrored=outcome.commerce_mirrored,
    )


def unhide(order_id: str, *, chat_id=None) -> OperatorReply:
    outcome = snapshot_service.unhide(order_id)
    return _reply(chat_id, f"👁 Order {order_id} is visible in today's list again.",
                  order=outcome.order.to_dict(), changed=outcome.changed)


def resend_qr(order_id: str, *, chat_id=None) -> OperatorReply:
    order_store.require_order(order_id)
    order = order_store.patch_by_order_id(order_id, {"resend_qr_pending": True})
    return _reply(chat_id, f"🔁 QR resend triggered for order {order_id}.", order=order.to_dict())


def track(order_id: str, phone: str, tracking_id: str, *, chat_id=None) -> OperatorReply:
    order = order_store.require_order(order_id)
    patch = complete(OrderState.from_order(order), tracking_id)
    order = order_store.patch_by_order_id(order_id, patch)
    return _reply(
        chat_id,
        f"📦 Tracking set:\nOrder: {order_id}\nPhone: {phone}\nTracking ID: {tracking_id}",
        order=order.to_dict(),
    )


def show_order(order_id: str, *, chat_id=None) -> OperatorReply:
    order = order_store.require_order(order_id)
    return _reply(chat_id, messages.order_details(order), order=order.to_dict())


# =============================================================================
# DAY LISTS
# =============================================================================

def _visible_rows(rows):
    hidden = {
        o.order_id
        for o in order_store.list_by_order_ids([r.order_id for r in rows])
        if o.hidden_from_today
    }
    return [r for r in rows if r.order_id not in hidden]


def list_today(*, chat_id=None, now: datetime | None = None) -> OperatorReply:
    day = _today(now)
    rows = _visible_rows(order_store.list_ledger_by_day(day))
    text = messages.ledger_list(day, rows, tz_name=current_app.config["TIMEZONE"])
    return _reply(chat_id, text, day=day.isoformat(), entries=[r.to_dict() for r in rows])


def list_by_day(day: date, *, chat_id=None) -> OperatorReply:
    rows = order_store.list_ledger_by_day(day)
    text = messages.ledger_list(day, rows, tz_name=current_app.config["TIMEZONE"])
    return _reply(chat_id, text, day=day.isoformat(), entries=[r.to_dict() for r in rows])


def delete_today_preview(*, chat_id=None, now: datetime | None = None) -> OperatorReply:
    day = _today(now)
    rows = order_store.list_ledger_by_day(day)
    return _reply(chat_id, messages.delete_preview(day, rows),
                  day=day.isoformat(), order_ids=[r.order_id for r in rows])


def delete_today_confirm(*, chat_id=None, now: datetime | None = None) -> OperatorReply:
    """
    Bulk cleanup of today's ledger: rows are deleted and their orders
    marked deleted. Orders already deleted are left as they are.
    """
    day = _today(now)
    order_ids = list(dict.fromkeys(r.order_id for r in order_store.list_ledger_by_day(day)))
    removed = order_store.delete_ledger_by_day(day)

    marked = []
    for order in order_store.list_by_order_ids(order_ids):
        if order.status != STATUS_DELETED and can_transition(order.status, STATUS_DELETED):
            order_store.patch_by_order_id(order.order_id, {"status": STATUS_DELETED, "next_message": None})
            marked.append(order.order_id)

    current_app.logger.info("Deleted %s ledger row(s) for %s; orders marked deleted: %s", removed, day, marked)
    return _reply(
        chat_id,
        f"🗑 Deleted {removed} paid order row(s) for {day.isoformat()}.",
        day=day.isoformat(),
        deleted_entries=removed,
        deleted_orders=marked,
    )


def night_summary(*, now: datetime | None = None) -> OperatorReply:
    config = current_app.config
    day = _today(now)
    paid = order_store.list_paid_since(local_midnight_utc(config["TIMEZONE"], day))
    message = f"📊 Daily Summary\nPaid Orders: {len(paid)}"
    sent = notify(config.get("SUPPLIER_CHAT_ID"), message)
    return OperatorReply(message=message, data={"day": day.isoformat(), "paid_orders": len(paid), "sent": sent})


def parse_day(value: str | None, *, now: datetime | None = None) -> date:
    """ISO date, or today in the operating timezone when empty."""
    if not value or value.strip().lower() == "today":
        return _today(now or utcnow())
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValueError("day must be an ISO date (YYYY-MM-DD)")
