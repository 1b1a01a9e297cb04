# Overview: Pytest coverage for full cancel / restore snapshots and the hide-only toggle.

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from orderflow.services import order_store, payment_service, snapshot_service
from orderflow.services.order_state import LifecycleError
from orderflow.services.order_store import OrderNotFoundError, StaleOrderError
from orderflow.time_utils import utcnow


class TestCancelRestore:

    def test_cancel_then_restore_round_trip(self, make_order, reload, gateways):
        make_order("2001", reminder_24_sent=True, next_message="reminder_48h")
        before = reload("2001")
        watched = {name: getattr(before, name) for name in snapshot_service.SNAPSHOT_FIELDS}

        cancelled = snapshot_service.cancel_full("2001")
        assert cancelled.changed is True
        order = reload("2001")
        assert order.status == "cancelled"
        assert order.next_message is None
        assert order.hidden_from_today is True
        assert (order.reminder_24_sent, order.reminder_48_sent, order.reminder_72_sent) == (True, True, True)
        assert order.previous_status == "pending_payment"
        assert order.previous_reminder_24_sent is True
        assert order.previous_reminder_48_sent is False

        restored = snapshot_service.restore("2001")
        assert restored.changed is True
        order = reload("2001")
        assert {name: getattr(order, name) for name in snapshot_service.SNAPSHOT_FIELDS} == watched
        assert order.hidden_from_today is False
        assert all(getattr(order, name) is None for name in snapshot_service.PREVIOUS_FIELDS)

        assert gateways.commerce.calls == [("2001", "cancelled"), ("2001", "pending_payment")]

    def test_paid_order_restores_paid_at(self, make_order, reload):
        make_order("2002")
        payment_service.finalize_paid("2002")
        paid_at = reload("2002").paid_at

        snapshot_service.cancel_full("2002")
        snapshot_service.restore("2002")

        order = reload("2002")
        assert order.status == "paid"
        assert order.paid_at == paid_at
        assert order.amount == Decimal("500")

    def test_second_full_cancel_is_rejected(self, make_order, reload):
        make_order("2003")
        snapshot_service.cancel_full("2003")

        with pytest.raises(LifecycleError):
            snapshot_service.cancel_full("2003")

        assert reload("2003").previous_status == "pending_payment"

    def test_restore_without_snapshot_is_a_no_op(self, make_order, reload, gateways):
        make_order("2004")
        outcome = snapshot_service.restore("2004")

        assert outcome.changed is False
        assert reload("2004").status == "pending_payment"
        assert gateways.commerce.calls == []

    @pytest.mark.parametrize("status", ["completed", "deleted"])
    def test_terminal_orders_cannot_be_cancelled(self, make_order, status):
        make_order("2005", status=status)
        with pytest.raises(LifecycleError):
            snapshot_service.cancel_full("2005")

    def test_commerce_failure_keeps_local_cancel(self, make_order, reload, gateways):
        gateways.commerce.fail = True
        make_order("2006")

        outcome = snapshot_service.cancel_full("2006")

        assert outcome.commerce_mirrored is False
        assert reload("2006").status == "cancelled"

    def test_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            snapshot_service.cancel_full("nope")


class TestHideOnly:

    def test_hide_and_unhide_touch_only_visibility(self, make_order, reload, gateways):
        make_order("2101")

        assert snapshot_service.hide_only("2101").changed is True
        order = reload("2101")
        assert order.hidden_from_today is True
        assert order.status == "pending_payment"
        assert order.previous_status is None

        assert snapshot_service.hide_only("2101").changed is False
        assert snapshot_service.unhide("2101").changed is True
        assert reload("2101").hidden_from_today is False
        assert gateways.commerce.calls == []


class TestOrderStorePatch:

    def test_compare_and_swap_rejects_stale_version(self, make_order, reload):
        order = make_order("2201")
        version = order.version_id

        order_store.patch_by_order_id("2201", {"hidden_from_today": True})

        with pytest.raises(StaleOrderError):
            order_store.patch_by_order_id("2201", {"status": "cancelled"}, expected_version=version)
        assert reload("2201").status == "pending_payment"

    def test_unknown_fields_rejected(self, make_order):
        make_order("2202")
        with pytest.raises(ValueError):
            order_store.patch_by_order_id("2202", {"order_id": "other"})

    def test_patch_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            order_store.patch_by_order_id("missing", {"status": "paid"})

    def test_list_paid_since(self, make_order):
        make_order("2203")
        payment_service.finalize_paid("2203")
        make_order("2204")

        since = utcnow() - timedelta(minutes=5)
        assert [o.order_id for o in order_store.list_paid_since(since)] == ["2203"]

    def test_delete_by_filter(self, make_order):
        make_order("2205", status="cancelled")
        make_order("2206")

        assert order_store.delete(status="cancelled") == 1
        assert order_store.get_by_order_id("2205") is None
        assert order_store.get_by_order_id("2206") is not None

    def test_locked_database_write_is_retried(self, db_session, make_order, reload, monkeypatch):
        make_order("2207")
        session = db_session()
        real_commit = session.commit
        attempts = []

        def locked_once():
            attempts.append(1)
            if len(attempts) == 1:
                raise OperationalError("UPDATE orders", {}, Exception("database is locked"))
            return real_commit()

        monkeypatch.setattr(order_store.time, "sleep", lambda seconds: None)
        monkeypatch.setattr(session, "commit", locked_once)

        order_store.patch_by_order_id("2207", {"hidden_from_today": True})

        assert len(attempts) == 2
        monkeypatch.undo()
        assert reload("2207").hidden_from_today is True

    def test_failed_write_is_rolled_back(self, make_order, reload):
        make_order("2208")

        with pytest.raises(IntegrityError):
            order_store.insert({"order_id": "2208"})

        assert order_store.get_by_order_id("2208") is not None
        order_store.patch_by_order_id("2208", {"hidden_from_today": True})
        assert reload("2208").hidden_from_today is True
