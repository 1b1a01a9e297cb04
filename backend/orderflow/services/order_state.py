# Overview: Pure order lifecycle rules; computes field patches, performs no I/O.

"""
Order Lifecycle / State Transition Engine

================================================================================
PURPOSE: Decide what an order's next state is, given its current state and time
================================================================================

STATE MACHINE:
    pending_payment -> paid -> completed
    pending_payment -> cancelled
    paid            -> cancelled            (operator full cancel)
    cancelled       -> <previous status>    (restore from snapshot)
    any             -> deleted              (bulk ledger cleanup only)

    completed and deleted are terminal for lifecycle commands.

REMINDER ESCALATION (pending_payment only):
    >= 24h  reminder_24_sent, next_message=reminder_48h
    >= 48h  reminder_48_sent, discounted_amount=amount-discount, next_message=reminder_72h
    >= 72h  reminder_72_sent, status=cancelled, next_message=None

    One step per call, checked in ascending order. An order that was never
    ticked for 3 days still walks 24 -> 48 -> 72 across three ticks.

RULES:
1. Functions here are pure: they read an OrderState and return a patch dict
2. Reminder flags only ever go False -> True here (restore lives elsewhere)
3. mark_paid on an already-paid order returns the same patch (idempotent)
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from orderflow.time_utils import hours_between


STATUS_PENDING_PAYMENT = "pending_payment"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"
STATUS_DELETED = "deleted"

VALID_STATUSES = {
    STATUS_PENDING_PAYMENT,
    STATUS_PAID,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_DELETED,
}
TERMINAL_STATUSES = {STATUS_COMPLETED, STATUS_DELETED}

NEXT_REMINDER_24 = "reminder_24h"
NEXT_REMINDER_48 = "reminder_48h"
NEXT_REMINDER_72 = "reminder_72h"

REMINDER_24_HOURS = 24
REMINDER_48_HOURS = 48
REMINDER_72_HOURS = 72
DEFAULT_DISCOUNT = 30

_TRANSITIONS = {
    (STATUS_PENDING_PAYMENT, STATUS_PAID),
    (STATUS_PENDING_PAYMENT, STATUS_CANCELLED),
    (STATUS_PAID, STATUS_COMPLETED),
    (STATUS_PAID, STATUS_CANCELLED),
    (STATUS_CANCELLED, STATUS_PENDING_PAYMENT),
    (STATUS_CANCELLED, STATUS_PAID),
}


class LifecycleError(ValueError):
    """
    Raised when an invalid lifecycle transition is attempted.

    This is a domain error, not a technical error.
    """
    pass


@dataclass(frozen=True)
class OrderState:
    """
    The slice of an order the lifecycle rules look at.

    Built from an Order row (or any object with the same attributes) and
    threaded through the pure functions below. `apply` returns a new state
    with a patch merged in, so a sequence of ticks can be simulated without
    a database.
    """
    status: str
    created_at: datetime
    amount: Decimal = Decimal("0")
    paid_at: Optional[datetime] = None
    next_message: Optional[str] = NEXT_REMINDER_24
    reminder_24_sent: bool = False
    reminder_48_sent: bool = False
    reminder_72_sent: bool = False
    discounted_amount: Optional[Decimal] = None
    paid_message_pending: bool = False
    hidden_from_today: bool = False
    tracking_sent: bool = False
    tracking_id: Optional[str] = None

    @classmethod
    def from_order(cls, order: Any) -> "OrderState":
        values = {}
        for f in fields(cls):
            if hasattr(order, f.name):
                values[f.name] = getattr(order, f.name)
        values["amount"] = Decimal(str(values.get("amount") or 0))
        for flag in ("reminder_24_sent", "reminder_48_sent", "reminder_72_sent",
                     "paid_message_pending", "hidden_from_today", "tracking_sent"):
            values[flag] = bool(values.get(flag))
        return cls(**values)

    def apply(self, patch: dict) -> "OrderState":
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in patch.items() if k in known})

    @property
    def flags(self) -> tuple[bool, bool, bool]:
        return (self.reminder_24_sent, self.reminder_48_sent, self.reminder_72_sent)


def validate_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check if a state transition is valid according to the lifecycle rules.

    Same-state transitions are allowed (idempotent re-apply). Any non-deleted
    order may be moved to deleted by the bulk cleanup.
    """
    validate_status(from_status)
    validate_status(to_status)

    if from_status == to_status:
        return True
    if to_status == STATUS_DELETED:
        return from_status != STATUS_DELETED
    return (from_status, to_status) in _TRANSITIONS


def compute_reminder_step(state: OrderState, now: datetime, *, discount: int = DEFAULT_DISCOUNT) -> dict:
    """
    Next reminder patch for a pending order, or {} when nothing is due.

    Only pending_payment orders escalate; for any other status this is a no-op.
    """
    if state.status != STATUS_PENDING_PAYMENT or state.created_at is None:
        return {}

    elapsed = hours_between(state.created_at, now)

    if not state.reminder_24_sent and elapsed >= REMINDER_24_HOURS:
        return {"reminder_24_sent": True, "next_message": NEXT_REMINDER_48}
    if not state.reminder_48_sent and elapsed >= REMINDER_48_HOURS:
        return {
            "reminder_48_sent": True,
            "discounted_amount": state.amount - Decimal(discount),
            "next_message": NEXT_REMINDER_72,
        }
    if not state.reminder_72_sent and elapsed >= REMINDER_72_HOURS:
        return {"reminder_72_sent": True, "status": STATUS_CANCELLED, "next_message": None}
    return {}


def mark_paid(state: OrderState, now: datetime) -> dict:
    """
    Paid transition patch.

    Valid from pending_payment; on an already-paid order the original
    paid_at is kept so a second call leaves the row unchanged.

    Raises:
        LifecycleError: if the order is in any other status
    """
    if state.status not in (STATUS_PENDING_PAYMENT, STATUS_PAID):
        raise LifecycleError(
            f"Cannot mark order paid: current status is '{state.status}', must be '{STATUS_PENDING_PAYMENT}'"
        )

    paid_at = state.paid_at if state.status == STATUS_PAID and state.paid_at else now
    return {
        "status": STATUS_PAID,
        "paid_at": paid_at,
        "paid_message_pending": True,
        "reminder_24_sent": True,
        "reminder_48_sent": True,
        "reminder_72_sent": True,
        "next_message": None,
        "hidden_from_today": False,
    }


def complete(state: OrderState, tracking_id: str | None = None) -> dict:
    """paid -> completed once the parcel has a tracking id."""
    if state.status not in (STATUS_PAID, STATUS_COMPLETED):
        raise LifecycleError(
            f"Cannot complete order: current status is '{state.status}', must be '{STATUS_PAID}'"
        )
    return {
        "status": STATUS_COMPLETED,
        "tracking_sent": True,
        "tracking_id": tracking_id or state.tracking_id,
    }
