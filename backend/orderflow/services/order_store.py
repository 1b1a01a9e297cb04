# Overview: Order Store gateway; the only module that reads or writes order and ledger rows.

"""
Order Store

Narrow request/response contract over the orders and paid_order_items
tables. Every write is "fetch current row, set fields, commit by primary
key". Patches may carry `expected_version`: the write is then a
compare-and-swap on orders.version_id and fails with StaleOrderError when
the row changed since the caller read it.

WRITES:
- Retried while the database is locked (OperationalError) or the mapper's
  version check fails on flush (StaleDataError). Each attempt re-reads the
  row, so a CAS patch whose row moved on ends as StaleOrderError instead of
  being retried blindly.
- Any other failure rolls the session back and propagates; nothing is left
  half-written in the session.
"""

from __future__ import annotations

import time
from datetime import date, datetime
from typing import Any, Callable

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Order, PaidOrderItem


RETRYABLE_ERRORS = (OperationalError, StaleDataError)
WRITE_ATTEMPTS = 3
WRITE_BACKOFF_SECONDS = 0.1


class OrderNotFoundError(ValueError):
    """Referenced order_id is not in the store."""

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class StaleOrderError(ValueError):
    """Compare-and-swap patch lost against a concurrent writer."""

    def __init__(self, order_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Order {order_id} changed concurrently (expected version {expected_version}, found {actual_version})"
        )
        self.order_id = order_id
        self.expected_version = expected_version
        self.actual_version = actual_version


_READ_ONLY_COLUMNS = {"id", "order_id", "version_id"}
PATCHABLE_FIELDS = frozenset(
    c.key for c in Order.__mapper__.columns if c.key not in _READ_ONLY_COLUMNS
)


def _write(op: Callable[[], Any], what: str) -> Any:
    """
    Run one store write and commit it.

    `op` stages changes on db.session (re-reading the rows it touches) and
    returns the result; the commit happens here, once, for everything staged.
    """
    for attempt in range(1, WRITE_ATTEMPTS + 1):
        try:
            result = op()
            db.session.commit()
            return result
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == WRITE_ATTEMPTS:
                current_app.logger.error("Order store write gave up after %s attempts: %s", attempt, what)
                raise
            current_app.logger.warning(
                "Order store write retry %s/%s (%s): %s", attempt, WRITE_ATTEMPTS, type(exc).__name__, what
            )
            time.sleep(WRITE_BACKOFF_SECONDS * (2 ** (attempt - 1)))
        except Exception:
            db.session.rollback()
            raise


def get_by_order_id(order_id: str) -> Order | None:
    return db.session.query(Order).filter_by(order_id=str(order_id)).first()


def require_order(order_id: str) -> Order:
    order = get_by_order_id(order_id)
    if order is None:
        raise OrderNotFoundError(str(order_id))
    return order


def insert(fields: dict[str, Any]) -> Order:
    def _op():
        order = Order(**fields)
        db.session.add(order)
        return order

    return _write(_op, f"insert order {fields.get('order_id')}")


def _check_patchable(fields: dict[str, Any]) -> None:
    unknown = set(fields) - PATCHABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot patch order fields: {', '.join(sorted(unknown))}")


def _stage_patch(order_id: str, fields: dict[str, Any], expected_version: int | None) -> Order:
    order = require_order(order_id)
    if expected_version is not None and order.version_id != expected_version:
        raise StaleOrderError(str(order_id), expected_version, order.version_id)
    for key, value in fields.items():
        setattr(order, key, value)
    return order


def patch_by_order_id(order_id: str, fields: dict[str, Any], *, expected_version: int | None = None) -> Order:
    """
    Apply a partial update to one order.

    Raises:
        OrderNotFoundError: no such order
        StaleOrderError: expected_version given and the row moved on
        ValueError: a field outside PATCHABLE_FIELDS
    """
    _check_patchable(fields)
    return _write(
        lambda: _stage_patch(order_id, fields, expected_version),
        f"patch order {order_id} {sorted(fields)}",
    )


def patch_with_ledger_entry(order_id: str, fields: dict[str, Any], entry: dict[str, Any]) -> tuple[Order, PaidOrderItem]:
    """
    Patch an order and append its ledger row in a single commit.

    Either both land or neither does, so a paid order never exists without
    its paid_order_items row.
    """
    _check_patchable(fields)

    def _op():
        order = _stage_patch(order_id, fields, None)
        row = PaidOrderItem(**entry)
        db.session.add(row)
        return order, row

    return _write(_op, f"patch order {order_id} with ledger entry for {entry.get('day')}")


def delete(**filters: Any) -> int:
    return _write(
        lambda: db.session.query(Order).filter_by(**filters).delete(synchronize_session=False),
        f"delete orders {filters}",
    )


def list_by_status(status: str) -> list[Order]:
    return (
        db.session.query(Order)
        .filter_by(status=status)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )


def list_paid_since(since: datetime) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.status == "paid", Order.paid_at >= since)
        .order_by(Order.paid_at.asc())
        .all()
    )


def list_by_order_ids(order_ids: list[str]) -> list[Order]:
    if not order_ids:
        return []
    return db.session.query(Order).filter(Order.order_id.in_(order_ids)).all()


def list_ledger_by_day(day: date) -> list[PaidOrderItem]:
    return (
        db.session.query(PaidOrderItem)
        .filter_by(day=day)
        .order_by(PaidOrderItem.created_at.asc(), PaidOrderItem.id.asc())
        .all()
    )


def has_ledger_entry(order_id: str) -> bool:
    return db.session.query(PaidOrderItem.id).filter_by(order_id=str(order_id)).first() is not None


def insert_ledger_entry(fields: dict[str, Any]) -> PaidOrderItem:
    def _op():
        entry = PaidOrderItem(**fields)
        db.session.add(entry)
        return entry

    return _write(_op, f"insert ledger entry for order {fields.get('order_id')}")


def delete_ledger_by_day(day: date) -> int:
    return _write(
        lambda: db.session.query(PaidOrderItem).filter_by(day=day).delete(synchronize_session=False),
        f"delete ledger rows for {day}",
    )
