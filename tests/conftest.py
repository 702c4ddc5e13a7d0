"""Pytest fixtures for storefront tests."""

import os

# must be set before app.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENV"] = "test"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import app.models  # noqa: F401
from app.config import settings
from app.database import get_session
from app.errors import UpstreamError
from app.main import app as fastapi_app
from app.models.cart import CartItem
from app.models.order import Order
from app.models.product import Product, ProductVariant
from app.models.user import User
from app.services.gateway import get_gateway
from app.utils.rate_limit import get_rate_limiter
from app.utils.token import create_access_token

KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"
CRON_SECRET = "test_cron_secret"


class FakeGateway:
    """In-memory stand-in for the Razorpay order API."""

    key_id = "rzp_test_key"

    def __init__(self):
        self.created = []
        self.payments = {}
        self.failing = set()
        self.fetch_calls = []

    def create_order(self, amount, currency, receipt, notes=None):
        razorpay_order_id = f"order_fake_{len(self.created) + 1}"
        self.created.append({
            "id": razorpay_order_id,
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        })
        return {"id": razorpay_order_id, "amount": amount, "currency": currency}

    def fetch_order_payments(self, razorpay_order_id):
        self.fetch_calls.append(razorpay_order_id)
        if razorpay_order_id in self.failing:
            raise UpstreamError(f"fetch payments failed for {razorpay_order_id}")
        return self.payments.get(razorpay_order_id, [])

    def capture(self, razorpay_order_id, payment_id="pay_captured_1"):
        self.payments[razorpay_order_id] = [
            {"id": "pay_failed_0", "status": "failed"},
            {"id": payment_id, "status": "captured"},
        ]


@pytest.fixture(autouse=True)
def secrets(monkeypatch):
    monkeypatch.setattr(settings, "RAZORPAY_KEY_ID", "rzp_test_key")
    monkeypatch.setattr(settings, "RAZORPAY_KEY_SECRET", KEY_SECRET)
    monkeypatch.setattr(settings, "RAZORPAY_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "CRON_SECRET", CRON_SECRET)
    monkeypatch.setattr(settings, "BREVO_API_KEY", "")
    monkeypatch.setattr(settings, "SLACK_WEBHOOK_URL", None)
    monkeypatch.setattr(settings, "ALERT_EMAIL", None)


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    get_rate_limiter.cache_clear()
    yield
    get_rate_limiter.cache_clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(engine, gateway):
    def override_session():
        with Session(engine) as s:
            yield s

    fastapi_app.dependency_overrides[get_session] = override_session
    fastapi_app.dependency_overrides[get_gateway] = lambda: gateway
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


def make_user(session, role="customer", email="bride@example.com"):
    user = User(email=email, full_name="Test Bride", role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_product(session, name="Silk Lehenga", price="2500.00", stock=5):
    product = Product(name=name, price=Decimal(price), stock=stock)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


def make_variant(session, product, label="M", stock=3):
    variant = ProductVariant(product_id=product.id, label=label, stock=stock)
    session.add(variant)
    session.commit()
    session.refresh(variant)
    return variant


def add_cart_line(session, user, product, quantity=1, variant=None):
    item = CartItem(
        user_id=user.id,
        product_id=product.id,
        variant_id=variant.id if variant else None,
        quantity=quantity,
    )
    session.add(item)
    session.commit()
    return item


def make_order(session, user, total="2500.00", **fields):
    order = Order(
        user_id=user.id,
        total_amount=Decimal(total),
        full_name="Test Bride",
        phone="9999999999",
        address_line1="12 MG Road",
        city="Bengaluru",
        state="Karnataka",
        postal_code="560001",
        **fields,
    )
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def auth_headers(user):
    token = create_access_token({"user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


def reload(session, model, pk):
    session.expire_all()
    return session.get(model, pk)


SHIPPING = {
    "full_name": "Test Bride",
    "email": "bride@example.com",
    "phone": "9999999999",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


@pytest.fixture
def customer(session):
    return make_user(session)


@pytest.fixture
def admin(session):
    return make_user(session, role="admin", email="admin@example.com")
