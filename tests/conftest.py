import hashlib
import hmac
import json
import os
import tempfile
import time
from types import SimpleNamespace

import pytest

# Settings are read once, on first import of the package
_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="food_ordering_tests_"), "test.db")
WEBHOOK_SECRET = "whsec_test_secret"

os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["STRIPE_WEBHOOK_SECRET"] = WEBHOOK_SECRET
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["REDIS_URL"] = "redis://localhost:6399/0"

from fastapi.testclient import TestClient  # noqa: E402

from food_ordering.celery_worker import celery_app  # noqa: E402
from food_ordering.database import Base, get_sync_engine, get_sync_session  # noqa: E402
from food_ordering.main import app  # noqa: E402
from food_ordering.models import (  # noqa: E402
    CartItem,
    MenuItem,
    Order,
    OrderStatus,
    Restaurant,
    User,
)
from food_ordering.services.payment import MockPaymentService, get_payment_service  # noqa: E402

celery_app.conf.update(task_always_eager=True)

WEBHOOK_URL = "/api/order/checkout/webhook"


def auth(user):
    return {"X-Auth-Subject": user.auth0_id}


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Stripe-Signature header for a payload."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def completed_event(order_id, event_id="evt_test_1", amount_total=None, restaurant_id="r"):
    session = {
        "id": "cs_test_1",
        "object": "checkout.session",
        "metadata": {"orderId": order_id, "restaurantId": restaurant_id},
    }
    if amount_total is not None:
        session["amount_total"] = amount_total
    return json.dumps({
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": session},
    }).encode("utf-8")


@pytest.fixture(autouse=True)
def database():
    engine = get_sync_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    session = get_sync_session()
    yield session
    session.close()


@pytest.fixture
def payment_service():
    service = MockPaymentService(webhook_secret=WEBHOOK_SECRET)
    app.dependency_overrides[get_payment_service] = lambda: service
    return service


@pytest.fixture
def client(payment_service):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def seed(db_session):
    """
    Two customers, a restaurant owner, and a restaurant selling
    item A (500) and item B (1000) with a 300 delivery fee.
    """
    owner = User(auth0_id="auth0|owner", email="owner@example.com", name="Owner")
    customer = User(auth0_id="auth0|customer", email="customer@example.com", name="Jane")
    stranger = User(auth0_id="auth0|stranger", email="stranger@example.com")
    db_session.add_all([owner, customer, stranger])
    db_session.flush()

    item_a = MenuItem(name="Pizza Margherita", price=500, position=0)
    item_b = MenuItem(name="Lasagne", price=1000, position=1)
    restaurant = Restaurant(
        user_id=owner.id,
        restaurant_name="Luigi's",
        city="London",
        country="United Kingdom",
        delivery_price=300,
        estimated_delivery_time=30,
        cuisines=["Italian"],
        image_url="https://images.example.com/luigis.png",
        menu_items=[item_a, item_b],
    )
    db_session.add(restaurant)
    db_session.commit()

    return SimpleNamespace(
        owner=owner,
        customer=customer,
        stranger=stranger,
        restaurant=restaurant,
        item_a=item_a,
        item_b=item_b,
    )


@pytest.fixture
def make_order(db_session, seed):
    """Store an order for the seeded customer, bypassing checkout."""
    def _make_order(status=OrderStatus.PLACED, total_amount=2300, user=None, cart=None):
        if cart is None:
            cart = [(seed.item_a.id, "2", "Pizza Margherita"), (seed.item_b.id, "1", "Lasagne")]
        order = Order(
            restaurant_id=seed.restaurant.id,
            user_id=(user or seed.customer).id,
            delivery_email="customer@example.com",
            delivery_name="Jane",
            delivery_address_line1="1 High Street",
            delivery_city="London",
            cart_items=[
                CartItem(menu_item_id=menu_item_id, quantity=quantity, name=name, position=i)
                for i, (menu_item_id, quantity, name) in enumerate(cart)
            ],
            total_amount=total_amount,
            status=status,
        )
        db_session.add(order)
        db_session.commit()
        return order.id

    return _make_order


@pytest.fixture
def load_order(db_session):
    def _load_order(order_id):
        db_session.expunge_all()
        return db_session.get(Order, order_id)

    return _load_order
