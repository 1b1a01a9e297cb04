"""
Pytest fixtures for OrderFlow backend tests.

Provides an in-memory database, a test client, recording fakes for the
commerce and notification gateways, and an order factory.
"""

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from orderflow import create_app
from orderflow.extensions import db
from orderflow.services import order_store
from orderflow.services.gateways import COMMERCE_EXTENSION, NOTIFIER_EXTENSION, GatewayError
from orderflow.services.item_normalizer import OrderItem, serialize_items
from orderflow.time_utils import utcnow


class FakeCommerce:
    """Records status updates; `fail` raises GatewayError, `error` raises itself."""
    enabled = True

    def __init__(self):
        self.calls = []
        self.fail = False
        self.error = None

    def set_order_status(self, order_id, status):
        if self.error is not None:
            raise self.error
        if self.fail:
            raise GatewayError(f"commerce unavailable for {order_id}")
        self.calls.append((str(order_id), status))

    def close(self):
        return None


class FakeNotifier:
    """Records chat messages; channels in `fail_channels` raise GatewayError."""
    enabled = True

    def __init__(self):
        self.sent = []
        self.fail_channels = set()

    def send(self, channel_id, text):
        if channel_id in self.fail_channels:
            raise GatewayError(f"chat {channel_id} unreachable")
        self.sent.append((channel_id, text))

    def to(self, channel_id):
        return [text for channel, text in self.sent if channel == channel_id]

    def close(self):
        return None


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TIMEZONE': 'Asia/Kolkata',
        'OPERATOR_CHAT_ID': 'op',
        'SUPPLIER_CHAT_ID': 'sup',
        'OPERATOR_API_TOKEN': '',
        'TELEGRAM_TOKEN': '',
        'WC_KEY': '',
        'WC_SECRET': '',
        'SCHEDULER_MAX_WORKERS': 1,
        'REMINDER_DISCOUNT': 30,
        'SHOP_NAME': 'Vision Jerseys',
        'SHOP_PHONE': '9000000000',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def pooled_app(tmp_path):
    """App on a file database with a 4-worker scheduler pool and its own gateway fakes."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'pool.sqlite3'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TIMEZONE': 'Asia/Kolkata',
        'OPERATOR_CHAT_ID': 'op',
        'SUPPLIER_CHAT_ID': 'sup',
        'OPERATOR_API_TOKEN': '',
        'TELEGRAM_TOKEN': '',
        'WC_KEY': '',
        'WC_SECRET': '',
        'SCHEDULER_MAX_WORKERS': 4,
        'REMINDER_DISCOUNT': 30,
    })
    app.extensions[COMMERCE_EXTENSION] = FakeCommerce()
    app.extensions[NOTIFIER_EXTENSION] = FakeNotifier()

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(autouse=True)
def gateways(app):
    """Install recording fakes in place of WooCommerce and Telegram."""
    commerce = FakeCommerce()
    notifier = FakeNotifier()
    app.extensions[COMMERCE_EXTENSION] = commerce
    app.extensions[NOTIFIER_EXTENSION] = notifier

    yield SimpleNamespace(commerce=commerce, notifier=notifier)

    app.extensions.pop(COMMERCE_EXTENSION, None)
    app.extensions.pop(NOTIFIER_EXTENSION, None)


@pytest.fixture(scope='function')
def make_order(db_session):
    """Factory for stored orders; `age_hours` backdates created_at."""
    def _make(order_id="1001", *, age_hours=0, **overrides):
        items = overrides.pop("item_list", None) or [
            OrderItem(sku="VJ1", name="Home Jersey", quantity=1, size="L", technique="emb"),
        ]
        fields = {
            "order_id": order_id,
            "name": "Asha Rao",
            "phone": "9876543210",
            "email": "asha@example.com",
            "address": "12 MG Road",
            "state": "Karnataka",
            "pincode": "560001",
            "amount": Decimal("500"),
            "product": " | ".join(i.name for i in items),
            "sku": " | ".join(i.sku for i in items),
            "sizes": ", ".join(i.size for i in items if i.size),
            "technique": ", ".join(i.technique for i in items if i.technique),
            "quantity": sum(i.quantity for i in items),
            "items": serialize_items(items),
            "status": "pending_payment",
            "created_at": utcnow() - timedelta(hours=age_hours),
            "next_message": "reminder_24h",
        }
        fields.update(overrides)
        return order_store.insert(fields)
    return _make


@pytest.fixture(scope='function')
def reload(db_session):
    """Fresh copy of an order, bypassing objects cached in the session."""
    def _reload(order_id):
        db_session.expire_all()
        return order_store.get_by_order_id(order_id)
    return _reload
