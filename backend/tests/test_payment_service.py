# Overview: Pytest coverage for the paid transition, day ledger and supplier notification.

import pytest
from sqlalchemy.exc import IntegrityError

from orderflow.services import order_store, payment_service
from orderflow.services.item_normalizer import OrderItem
from orderflow.services.order_state import LifecycleError
from orderflow.services.order_store import OrderNotFoundError
from orderflow.time_utils import local_day, utcnow


class TestFinalizePaid:

    def test_pending_order_becomes_paid(self, make_order, reload, gateways):
        make_order("4001", reminder_24_sent=True, next_message="reminder_48h", hidden_from_today=True)

        outcome = payment_service.finalize_paid("4001", chat_id="op")

        assert outcome.newly_paid is True
        order = reload("4001")
        assert order.status == "paid"
        assert order.paid_at is not None
        assert order.paid_message_pending is True
        assert order.next_message is None
        assert order.hidden_from_today is False
        assert (order.reminder_24_sent, order.reminder_48_sent, order.reminder_72_sent) == (True, True, True)
        assert order.supplier_sent is True

        rows = order_store.list_ledger_by_day(outcome.day)
        assert [(r.order_id, r.name, r.sku) for r in rows] == [("4001", "Asha Rao", "VJ1")]
        assert outcome.day == local_day("Asia/Kolkata")

        assert gateways.commerce.calls == [("4001", "paid")]
        supplier = gateways.notifier.to("sup")
        assert len(supplier) == 1
        assert "NEW PAID ORDER" in supplier[0]
        assert "size: L" in supplier[0]
        assert "Technique: emb" in supplier[0]
        assert "(4001)" in gateways.notifier.to("op")[0]

    def test_marking_paid_twice_records_one_ledger_row(self, make_order, reload, gateways):
        make_order("4002")
        first = payment_service.finalize_paid("4002")
        paid_at = reload("4002").paid_at

        second = payment_service.finalize_paid("4002")

        assert second.newly_paid is False
        assert second.ledger_entry is None
        assert reload("4002").paid_at == paid_at
        assert len(order_store.list_ledger_by_day(first.day)) == 1
        assert len(gateways.notifier.to("sup")) == 1

    def test_supplier_summary_retried_when_first_delivery_failed(self, make_order, reload, gateways):
        gateways.notifier.fail_channels.add("sup")
        make_order("4003")
        first = payment_service.finalize_paid("4003")
        assert first.supplier_notified is False
        assert reload("4003").supplier_sent is False

        gateways.notifier.fail_channels.clear()
        second = payment_service.finalize_paid("4003")

        assert second.supplier_notified is True
        assert reload("4003").supplier_sent is True

    def test_commerce_failure_still_marks_paid(self, make_order, reload, gateways):
        gateways.commerce.fail = True
        make_order("4004")

        outcome = payment_service.finalize_paid("4004")

        assert outcome.commerce_mirrored is False
        assert reload("4004").status == "paid"
        assert len(order_store.list_ledger_by_day(outcome.day)) == 1

    def test_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            payment_service.finalize_paid("missing")

    @pytest.mark.parametrize("status", ["cancelled", "completed", "deleted"])
    def test_rejected_for_non_pending_orders(self, make_order, reload, status):
        make_order("4005", status=status)

        with pytest.raises(LifecycleError):
            payment_service.finalize_paid("4005")

        assert reload("4005").status == status
        assert order_store.list_ledger_by_day(local_day("Asia/Kolkata")) == []

    def test_ledger_row_copies_display_fields(self, make_order):
        make_order("4006", item_list=[
            OrderItem(sku="A", name="Home", size="M", technique="DTF"),
            OrderItem(sku="B", name="Away", size="XL", technique="DTF"),
        ])
        outcome = payment_service.finalize_paid("4006", now=utcnow())

        entry = outcome.ledger_entry
        assert entry.sku == "A | B"
        assert entry.sizes == "M, XL"
        assert entry.technique == "DTF"
        assert entry.to_dict()["amount"] == 500.0


class TestPaidLedgerAtomicity:

    def test_failed_ledger_write_leaves_order_pending(self, make_order, reload, gateways, monkeypatch):
        make_order("4101")
        real_fields = payment_service.ledger_entry_fields

        def broken_fields(order, day, now):
            fields = real_fields(order, day, now)
            fields["order_id"] = None
            return fields

        monkeypatch.setattr(payment_service, "ledger_entry_fields", broken_fields)

        with pytest.raises(IntegrityError):
            payment_service.finalize_paid("4101")

        order = reload("4101")
        assert order.status == "pending_payment"
        assert order.paid_at is None
        assert order_store.has_ledger_entry("4101") is False
        assert gateways.commerce.calls == []

        monkeypatch.setattr(payment_service, "ledger_entry_fields", real_fields)
        outcome = payment_service.finalize_paid("4101")

        assert outcome.newly_paid is True
        assert reload("4101").status == "paid"
        rows = order_store.list_ledger_by_day(outcome.day)
        assert [r.order_id for r in rows] == ["4101"]

    def test_paid_order_without_ledger_row_is_backfilled(self, make_order, reload):
        paid_at = utcnow()
        make_order("4102", status="paid", paid_at=paid_at, next_message=None)
        assert order_store.has_ledger_entry("4102") is False

        first = payment_service.finalize_paid("4102")

        assert first.newly_paid is False
        assert first.ledger_entry is not None
        assert first.ledger_entry.day == local_day("Asia/Kolkata", paid_at)

        second = payment_service.finalize_paid("4102")

        assert second.ledger_entry is None
        assert len(order_store.list_ledger_by_day(first.ledger_entry.day)) == 1
