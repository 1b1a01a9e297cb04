# Overview: SQLAlchemy models for orders and the append-only, day-bucketed paid ledger.

from __future__ import annotations

import json

from ..extensions import db
from orderflow.time_utils import to_utc_z


def _money(value):
    return float(value) if value is not None else None


class Order(db.Model):
    """
    Retail order tracked from checkout through payment, fulfillment, or cancellation.

    WHY: The commerce platform only knows "placed" orders. Payment happens
    out of band (QR transfer), so this row carries the reminder escalation
    flags, the paid/cancel/restore lifecycle and the display aggregates the
    supplier needs.

    SNAPSHOT: previous_* columns hold the pre-cancel values of the mutable
    lifecycle fields. They are non-null only while a full cancel is pending
    a possible restore.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Customer / shipping
    name = db.Column(db.String(255), nullable=False, default="")
    phone = db.Column(db.String(32), nullable=False, default="")
    email = db.Column(db.String(255), nullable=False, default="")
    address = db.Column(db.Text, nullable=False, default="")
    state = db.Column(db.String(128), nullable=False, default="")
    pincode = db.Column(db.String(16), nullable=False, default="")

    # Money and display aggregates (see services/item_normalizer.py)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discounted_amount = db.Column(db.Numeric(12, 2), nullable=True)
    product = db.Column(db.Text, nullable=False, default="")
    sku = db.Column(db.Text, nullable=False, default="")
    sizes = db.Column(db.Text, nullable=False, default="")
    technique = db.Column(db.Text, nullable=False, default="")
    quantity = db.Column(db.Integer, nullable=False, default=1)
    items = db.Column(db.Text, nullable=False, default="[]")  # JSON list of normalized items

    # Lifecycle
    status = db.Column(db.String(32), nullable=False, default="pending_payment", index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Messaging flags (consumed by the customer-messaging device)
    message_sent = db.Column(db.Boolean, nullable=False, default=False)
    next_message = db.Column(db.String(32), nullable=True, default="reminder_24h")
    reminder_24_sent = db.Column(db.Boolean, nullable=False, default=False)
    reminder_48_sent = db.Column(db.Boolean, nullable=False, default=False)
    reminder_72_sent = db.Column(db.Boolean, nullable=False, default=False)
    supplier_sent = db.Column(db.Boolean, nullable=False, default=False)
    paid_message_pending = db.Column(db.Boolean, nullable=False, default=False)
    resend_qr_pending = db.Column(db.Boolean, nullable=False, default=False)
    tracking_sent = db.Column(db.Boolean, nullable=False, default=False)
    tracking_id = db.Column(db.String(128), nullable=True)
    hidden_from_today = db.Column(db.Boolean, nullable=False, default=False)

    # Cancel snapshot
    previous_status = db.Column(db.String(32), nullable=True)
    previous_paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    previous_amount = db.Column(db.Numeric(12, 2), nullable=True)
    previous_next_message = db.Column(db.String(32), nullable=True)
    previous_reminder_24_sent = db.Column(db.Boolean, nullable=True)
    previous_reminder_48_sent = db.Column(db.Boolean, nullable=True)
    previous_reminder_72_sent = db.Column(db.Boolean, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def item_list(self) -> list[dict]:
        try:
            data = json.loads(self.items or "[]")
        except ValueError:
            return []
        return data if isinstance(data, list) else []

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "state": self.state,
            "pincode": self.pincode,
            "amount": _money(self.amount),
            "discounted_amount": _money(self.discounted_amount),
            "product": self.product,
            "sku": self.sku,
            "sizes": self.sizes,
            "technique": self.technique,
            "quantity": self.quantity,
            "items": self.item_list(),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at),
            "message_sent": self.message_sent,
            "next_message": self.next_message,
            "reminder_24_sent": self.reminder_24_sent,
            "reminder_48_sent": self.reminder_48_sent,
            "reminder_72_sent": self.reminder_72_sent,
            "supplier_sent": self.supplier_sent,
            "paid_message_pending": self.paid_message_pending,
            "resend_qr_pending": self.resend_qr_pending,
            "tracking_sent": self.tracking_sent,
            "tracking_id": self.tracking_id,
            "hidden_from_today": self.hidden_from_today,
            "previous_status": self.previous_status,
            "previous_paid_at": to_utc_z(self.previous_paid_at),
            "previous_amount": _money(self.previous_amount),
            "previous_next_message": self.previous_next_message,
            "previous_reminder_24_sent": self.previous_reminder_24_sent,
            "previous_reminder_48_sent": self.previous_reminder_48_sent,
            "previous_reminder_72_sent": self.previous_reminder_72_sent,
            "version_id": self.version_id,
        }


class PaidOrderItem(db.Model):
    """
    Day-bucketed ledger of paid orders.

    Append-only: one row per pending_payment -> paid transition, never
    updated. Rows are only removed in bulk for a whole day. Display fields
    are copied at payment time so reports do not depend on the live order.
    """
    __tablename__ = "paid_order_items"
    __table_args__ = (
        db.Index("ix_paid_order_items_day_order", "day", "order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    day = db.Column(db.Date, nullable=False, index=True)
    order_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False, default="")
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    sku = db.Column(db.Text, nullable=False, default="")
    sizes = db.Column(db.Text, nullable=False, default="")
    technique = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "day": self.day.isoformat() if self.day else None,
            "order_id": self.order_id,
            "name": self.name,
            "amount": _money(self.amount),
            "sku": self.sku,
            "sizes": self.sizes,
            "technique": self.technique,
            "created_at": to_utc_z(self.created_at),
        }
