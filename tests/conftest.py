# tests/conftest.py
# Env must be set before anything from app/ is imported (settings are read at import time).
import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.data.database import engine_options, init_db
from app.data.models import (
    CustomerModel,
    CustomerAddressModel,
    ProductModel,
    StoreModel,
    ProductStoreModel,
    OrderModel,
)
from app.domain.order_status import OrderStatus
from app.services.cart_service import CartService
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.payment_gateway import PaymentGatewayClient
from app.services.payment_service import PaymentService

TEST_DB_URL = "sqlite+pysqlite:///:memory:"
KEY_ID = "rzp_test_key"
KEY_SECRET = "test_secret"
WEBHOOK_SECRET = "whsec_test"


class FakeLockService(LockService):
    """In-process replacement for the redis lock; same hold() semantics."""

    def __init__(self):
        self.held = {}

    def acquire(self, key, token, ttl):
        if key in self.held:
            return False
        self.held[key] = token
        return True

    def release(self, key, token):
        if self.held.get(key) == token:
            del self.held[key]
            return True
        return False


class RecordingNotifier(NotificationService):
    """Builds real payloads but records them instead of queueing."""

    def __init__(self):
        self.sent = []

    def _notify(self, event, customer, email_data, push_data):
        self.sent.append((event, email_data, push_data))
        return 1

    @property
    def events(self):
        return [event for event, _, _ in self.sent]


class FakeGateway(PaymentGatewayClient):
    """Real signature checks, canned transport."""

    def __init__(self, **kwargs):
        kwargs.setdefault("key_id", KEY_ID)
        kwargs.setdefault("key_secret", KEY_SECRET)
        kwargs.setdefault("webhook_secret", WEBHOOK_SECRET)
        super().__init__(base_url="http://gateway.test", **kwargs)
        self.created = []

    def _post(self, path, payload):
        self.created.append(payload)
        return {
            "id": f"order_TEST{len(self.created)}",
            "entity": "order",
            "amount": payload["amount"],
            "currency": payload["currency"],
            "receipt": payload["receipt"],
            "status": "created",
        }


@pytest.fixture
def engine():
    engine = create_engine(TEST_DB_URL, **engine_options(TEST_DB_URL))
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    """
    Customers 1 and 2 with one address each.
    Store 1: keyboard (stock 10, base price 20.00), monitor (stock 3, store price 140.00),
             inactive mouse (stock 5).
    Store 2: keyboard out of stock at 19.00.
    """
    db.add_all(
        [
            CustomerModel(id=1, name="Jane Doe", email="jane@example.com", push_token="tok-abcdef"),
            CustomerModel(id=2, name="John Roe", email="john@example.com"),
        ]
    )
    db.add_all(
        [
            CustomerAddressModel(
                id=1, customer_id=1, address_line1="1 Main St", city="Springfield",
                state="IL", country="US", postal_code="62701",
            ),
            CustomerAddressModel(
                id=2, customer_id=2, address_line1="2 Oak Ave", city="Shelbyville",
                country="US", postal_code="62565",
            ),
        ]
    )
    db.add_all(
        [
            StoreModel(id=1, name="Downtown", code="DT"),
            StoreModel(id=2, name="Airport", code="AP"),
        ]
    )
    db.add_all(
        [
            ProductModel(id=1, name="Keyboard", sku="KB-1", price=Decimal("20.00"), status="active"),
            ProductModel(id=2, name="Monitor", sku="MN-1", price=Decimal("150.00"), status="active"),
            ProductModel(id=3, name="Mouse", sku="MS-1", price=Decimal("9.99"), status="inactive"),
        ]
    )
    db.add_all(
        [
            ProductStoreModel(id=1, product_id=1, store_id=1, stock=10, price=None),
            ProductStoreModel(id=2, product_id=2, store_id=1, stock=3, price=Decimal("140.00")),
            ProductStoreModel(id=3, product_id=3, store_id=1, stock=5, price=None),
            ProductStoreModel(id=4, product_id=1, store_id=2, stock=0, price=Decimal("19.00")),
        ]
    )
    db.commit()

    return SimpleNamespace(
        keyboard=1, monitor=2, mouse=3,
        downtown=1, airport=2,
        jane=1, john=2,
        jane_address=1, john_address=2,
    )


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def cart_service(db, catalog):
    return CartService(db)


@pytest.fixture
def order_service(db, catalog, notifier, lock_service):
    return OrderService(db, notifier=notifier, lock_service=lock_service)


@pytest.fixture
def payment_service(order_service, gateway):
    return PaymentService(order_service, gateway)


@pytest.fixture
def placed_order(cart_service, order_service, catalog):
    """Jane's order: 2 x keyboard = 40.00 + 3.20 tax + 10.00 shipping = 53.20."""
    cart_service.add_item(catalog.jane, catalog.keyboard, catalog.downtown, 2)
    return order_service.create_order_from_cart(catalog.jane, catalog.jane_address, "leave at door")


@pytest.fixture
def make_order(db, catalog):
    """Inserts an order directly in any status, bypassing checkout."""

    def _make(status=OrderStatus.CREATED, customer_id=1, address_id=1, **fields):
        order = OrderModel(
            order_number=f"ORD-TEST-{uuid.uuid4().hex[:8].upper()}",
            customer_id=customer_id,
            shipping_address_id=address_id,
            status=OrderStatus(status).value,
            subtotal=Decimal("40.00"),
            tax_amount=Decimal("3.20"),
            shipping_amount=Decimal("10.00"),
            discount_amount=Decimal("0.00"),
            total_amount=Decimal("53.20"),
            currency="USD",
            **fields,
        )
        db.add(order)
        db.commit()
        return order.id

    return _make
