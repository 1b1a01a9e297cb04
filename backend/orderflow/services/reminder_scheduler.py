# Overview: One reminder-escalation pass over all pending orders, triggered by an external cron call.

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app

from ..extensions import db
from orderflow.time_utils import utcnow
from . import order_store
from .gateways import mirror_order_status
from .order_state import (
    DEFAULT_DISCOUNT,
    STATUS_CANCELLED,
    STATUS_PENDING_PAYMENT,
    OrderState,
    compute_reminder_step,
)
from .order_store import StaleOrderError


OUTCOME_UPDATED = "updated"
OUTCOME_STALE = "stale"
OUTCOME_FAILED = "failed"


@dataclass
class ReminderStepJob:
    order_id: str
    version_id: int
    patch: dict


@dataclass
class TickResult:
    checked: int = 0
    updated: int = 0
    stale: int = 0
    failed: int = 0
    cancelled: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "checked": self.checked,
            "updated": self.updated,
            "stale": self.stale,
            "failed": self.failed,
            "cancelled": list(self.cancelled),
        }


def plan_reminder_steps(orders, now: datetime, *, discount: int = DEFAULT_DISCOUNT) -> list[ReminderStepJob]:
    """Pure part of the pass: which orders change and how."""
    jobs = []
    for order in orders:
        patch = compute_reminder_step(OrderState.from_order(order), now, discount=discount)
        if patch:
            jobs.append(ReminderStepJob(order.order_id, order.version_id, patch))
    return jobs


def apply_reminder_step(job: ReminderStepJob) -> str:
    """
    Write one order's step as a compare-and-swap patch.

    Failures are contained to this order: they are logged and reported as
    an outcome so the rest of the pass carries on.
    """
    try:
        order_store.patch_by_order_id(job.order_id, job.patch, expected_version=job.version_id)
    except StaleOrderError:
        current_app.logger.warning("Reminder step skipped, order %s changed concurrently", job.order_id)
        return OUTCOME_STALE
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Reminder step failed for order %s", job.order_id)
        return OUTCOME_FAILED

    current_app.logger.info("Reminder step applied: order=%s fields=%s", job.order_id, sorted(job.patch))
    if job.patch.get("status") == STATUS_CANCELLED:
        mirror_order_status(job.order_id, STATUS_CANCELLED)
    return OUTCOME_UPDATED


def _apply_in_app_context(app, job: ReminderStepJob) -> str:
    with app.app_context():
        return apply_reminder_step(job)


def run_reminder_pass(now: datetime | None = None) -> TickResult:
    """
    Fetch pending orders, compute each one's next reminder step, apply the
    non-empty ones. With SCHEDULER_MAX_WORKERS > 1 the writes are spread over
    a bounded thread pool, one app context (and DB session) per job.
    """
    now = now or utcnow()
    config = current_app.config
    discount = config.get("REMINDER_DISCOUNT", DEFAULT_DISCOUNT)
    max_workers = int(config.get("SCHEDULER_MAX_WORKERS", 1) or 1)

    orders = order_store.list_by_status(STATUS_PENDING_PAYMENT)
    jobs = plan_reminder_steps(orders, now, discount=discount)

    if max_workers <= 1 or len(jobs) <= 1:
        outcomes = [apply_reminder_step(job) for job in jobs]
    else:
        app = current_app._get_current_object()
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            outcomes = list(pool.map(lambda job: _apply_in_app_context(app, job), jobs))

    result = TickResult(checked=len(orders))
    for job, outcome in zip(jobs, outcomes):
        if outcome == OUTCOME_UPDATED:
            result.updated += 1
            if job.patch.get("status") == STATUS_CANCELLED:
                result.cancelled.append(job.order_id)
        elif outcome == OUTCOME_STALE:
            result.stale += 1
        else:
            result.failed += 1
    return result
