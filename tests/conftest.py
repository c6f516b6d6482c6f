"""Pytest fixtures: SQLite database, eager Celery, fake lock and fake payment gateway."""
import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# configuration is read at import time, so it has to be in place first
_tmpdir = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmpdir, 'storefront.db')}"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["FEDAPAY_WEBHOOK_SECRET"] = "whsec_test"
os.environ["FEDAPAY_SECRET_KEY"] = "sk_sandbox_test"
os.environ["ADMIN_API_TOKEN"] = "admin-test-token"
os.environ["PAYMENT_CURRENCY"] = "XOF"
os.environ["ORDER_NUMBER_PREFIX"] = "ORD"

import pytest
from fastapi.testclient import TestClient

from storefront.api.dependencies import get_lock_service, get_payment_gateways
from storefront.celery_worker import celery_app
from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import CartModel, CustomerModel, ProductModel, ProductVariationModel, PromotionModel
from storefront.domain.enums import PromotionType, StockReason
from storefront.domain.schemas import GatewaySession
from storefront.main import create_app
from storefront.services.cart_service import CartService
from storefront.services.fedapay_service import FedaPayClient, FedaPayGateway
from storefront.services.inventory_service import InventoryService

celery_app.conf.task_always_eager = True
celery_app.conf.task_eager_propagates = True

ADMIN_HEADERS = {"X-Admin-Token": "admin-test-token"}


class FakeLockService:
    """In-memory stand-in for the Redis checkout lock."""

    def __init__(self):
        self.locks = {}

    def acquire_checkout_lock(self, idempotency_key, owner, ttl):
        if idempotency_key in self.locks:
            return False
        self.locks[idempotency_key] = owner
        return True

    def release_checkout_lock(self, idempotency_key, owner):
        if self.locks.get(idempotency_key) == owner:
            del self.locks[idempotency_key]
            return True
        return False


class FakeGateway(FedaPayGateway):
    """FedaPay adapter without the network: hands out predictable transaction ids."""

    def __init__(self):
        super().__init__(client=FedaPayClient(secret_key="sk_sandbox_test"))
        self.created = []

    def create_transaction(self, payment, order):
        reference = f"tx-{len(self.created) + 1}"
        self.created.append((payment.id, order.id))
        return GatewaySession(
            payment_url=f"https://sandbox-checkout.fedapay.com/{reference}",
            token=f"token-{reference}",
            reference=reference,
        )


@pytest.fixture(autouse=True)
def database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(lock_service, gateway):
    app = create_app()
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_payment_gateways] = lambda: {"fedapay": gateway}
    with TestClient(app) as test_client:
        yield test_client


# =====================================================
# FACTORIES
# =====================================================
@pytest.fixture
def make_customer(db):
    def _make(email=None, first_name="Ada"):
        customer = CustomerModel(email=email or f"{uuid.uuid4().hex[:8]}@mailbox.org", first_name=first_name)
        db.add(customer)
        db.commit()
        return customer

    return _make


@pytest.fixture
def make_product(db):
    """Products get their stock through the ledger, like in production."""

    def _make(sku=None, price=5000, stock=10, track_inventory=True, categories=()):
        product = ProductModel(
            name=f"Product {sku or ''}".strip(),
            sku=sku or f"SKU-{uuid.uuid4().hex[:8]}",
            price=price,
            track_inventory=track_inventory,
            stock_quantity=0,
            categories=list(categories),
        )
        db.add(product)
        db.flush()
        if stock and track_inventory:
            InventoryService(db).record_movement(product.id, stock, StockReason.RESTOCK)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_variation(db):
    def _make(product, sku=None, price=None, stock=5):
        variation = ProductVariationModel(
            product_id=product.id,
            sku=sku or f"VAR-{uuid.uuid4().hex[:8]}",
            variation_name="Size M",
            price=price,
            stock_quantity=0,
        )
        db.add(variation)
        db.flush()
        if stock:
            InventoryService(db).record_movement(
                product.id, stock, StockReason.RESTOCK, variation_id=variation.id
            )
        db.commit()
        return variation

    return _make


@pytest.fixture
def make_promotion(db):
    def _make(code="SAVE10", type=PromotionType.PERCENTAGE, value=Decimal("10"), **fields):
        promotion = PromotionModel(
            name=code,
            code=code,
            type=type.value,
            value=value,
            usage_count=fields.pop("usage_count", 0),
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db.add(promotion)
        db.commit()
        return promotion

    return _make


@pytest.fixture
def make_cart(db):
    """Cart with lines already added; ``lines`` is a list of (product, quantity)."""

    def _make(customer=None, session_id=None, lines=()):
        service = CartService(db)
        if customer is None and session_id is None:
            session_id = f"sess-{uuid.uuid4().hex[:8]}"
        cart = service.get_or_create_cart(customer.id if customer else None, session_id)
        for product, quantity in lines:
            service.add_item(cart, product.id, quantity)
        return cart

    return _make


def checkout_payload(cart, **overrides):
    payload = {
        "cart_id": str(cart.id),
        "customer_id": str(cart.customer_id) if cart.customer_id else None,
        "session_id": cart.session_id,
        "customer_email": "buyer@mailbox.org",
        "customer_phone": "+22990000000",
        "shipping_address": {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "address_line1": "1 Rue du Port",
            "city": "Cotonou",
            "country": "BJ",
        },
        "payment_method": "mobile_money",
    }
    payload.update(overrides)
    return payload


def past(**delta) -> datetime:
    return datetime.now(timezone.utc) - timedelta(**delta)
