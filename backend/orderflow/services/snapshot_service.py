# Overview: Cancel/restore with state snapshotting, and the hide-from-today visibility toggle.

"""
Snapshot Manager

================================================================================
PURPOSE: Make a full cancel reversible
================================================================================

cancel_full:
    previous_* <- {status, paid_at, amount, next_message, reminder_24/48/72_sent}
    status = cancelled, next_message = None, all reminder flags = True,
    hidden_from_today = True
    then mirror "cancelled" to the commerce platform (best-effort)

restore:
    live fields <- previous_*, hidden_from_today = False, previous_* = None
    then mirror the restored status (best-effort)

hide_only / unhide:
    toggle hidden_from_today only; not captured in previous_*

RULES:
1. Snapshots do not stack: a second full cancel while previous_status is set
   is rejected instead of overwriting the pending snapshot
2. Completed and deleted orders cannot be cancelled
3. Restore without a snapshot is a reported no-op, not an error
4. Commerce failures never undo the local change
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..models import Order
from . import order_store
from .gateways import mirror_order_status
from .order_state import STATUS_CANCELLED, LifecycleError, is_terminal


SNAPSHOT_FIELDS = (
    "status",
    "paid_at",
    "amount",
    "next_message",
    "reminder_24_sent",
    "reminder_48_sent",
    "reminder_72_sent",
)
PREVIOUS_FIELDS = tuple(f"previous_{name}" for name in SNAPSHOT_FIELDS)
REMINDER_FLAGS = ("reminder_24_sent", "reminder_48_sent", "reminder_72_sent")


@dataclass
class SnapshotOutcome:
    order: Order
    changed: bool
    commerce_mirrored: bool = False


def has_snapshot(order: Any) -> bool:
    return getattr(order, "previous_status", None) is not None


def capture_snapshot(order: Any) -> dict:
    return {f"previous_{name}": getattr(order, name) for name in SNAPSHOT_FIELDS}


def cancel_full_patch(order: Any) -> dict:
    """
    Fields for a full cancel, snapshot included.

    Raises:
        LifecycleError: order is terminal or already holds a pending snapshot
    """
    if is_terminal(order.status):
        raise LifecycleError(f"Cannot cancel order {order.order_id}: status is '{order.status}'")
    if has_snapshot(order):
        raise LifecycleError(
            f"Order {order.order_id} is already cancelled with a pending restore; restore it before cancelling again"
        )

    patch = capture_snapshot(order)
    patch.update({
        "status": STATUS_CANCELLED,
        "next_message": None,
        "hidden_from_today": True,
    })
    patch.update({flag: True for flag in REMINDER_FLAGS})
    return patch


def restore_patch(order: Any) -> dict | None:
    """Fields that undo a full cancel, or None when there is nothing to restore."""
    if not has_snapshot(order):
        return None

    patch = {name: getattr(order, f"previous_{name}") for name in SNAPSHOT_FIELDS}
    if patch["amount"] is None:
        patch["amount"] = order.amount
    for flag in REMINDER_FLAGS:
        patch[flag] = bool(patch[flag])
    patch["hidden_from_today"] = False
    patch.update({name: None for name in PREVIOUS_FIELDS})
    return patch


def cancel_full(order_id: str) -> SnapshotOutcome:
    order = order_store.require_order(order_id)
    patch = cancel_full_patch(order)
    order = order_store.patch_by_order_id(order_id, patch, expected_version=order.version_id)
    mirrored = mirror_order_status(order.order_id, STATUS_CANCELLED)
    return SnapshotOutcome(order=order, changed=True, commerce_mirrored=mirrored)


def restore(order_id: str) -> SnapshotOutcome:
    order = order_store.require_order(order_id)
    patch = restore_patch(order)
    if patch is None:
        return SnapshotOutcome(order=order, changed=False)

    order = order_store.patch_by_order_id(order_id, patch, expected_version=order.version_id)
    mirrored = mirror_order_status(order.order_id, order.status)
    return SnapshotOutcome(order=order, changed=True, commerce_mirrored=mirrored)


def hide_only(order_id: str) -> SnapshotOutcome:
    order = order_store.require_order(order_id)
    if order.hidden_from_today:
        return SnapshotOutcome(order=order, changed=False)
    order = order_store.patch_by_order_id(order_id, {"hidden_from_today": True})
    return SnapshotOutcome(order=order, changed=True)


def unhide(order_id: str) -> SnapshotOutcome:
    order = order_store.require_order(order_id)
    if not order.hidden_from_today:
        return SnapshotOutcome(order=order, changed=False)
    order = order_store.patch_by_order_id(order_id, {"hidden_from_today": False})
    return SnapshotOutcome(order=order, changed=True)
