"""FedaPay webhook endpoint: signature check and always-200 processing."""
import json

import pytest

from storefront.data.models import PaymentModel
from storefront.domain.schemas import CheckoutIn
from storefront.services.order_creation_service import OrderCreationService
from storefront.services.payment_service import PaymentService
from storefront.utils import settings
from storefront.utils.security import compute_signature

from conftest import checkout_payload


@pytest.fixture
def payment(db, gateway, make_product, make_cart):
    cart = make_cart(lines=[(make_product(price=5000), 1)])
    order = OrderCreationService(db).create_order_from_cart(cart, CheckoutIn(**checkout_payload(cart)))
    session = PaymentService(db, gateways={"fedapay": gateway}).initialize_payment(order, "fedapay")
    return db.get(PaymentModel, session.payment_id)


def signed(payload, secret="whsec_test"):
    body = json.dumps(payload).encode()
    return body, {"X-FedaPay-Signature": compute_signature(body, secret), "Content-Type": "application/json"}


def approved(payment):
    return {
        "id": "evt-1",
        "name": "transaction.approved",
        "entity": {
            "id": payment.gateway_reference,
            "status": "approved",
            "custom_metadata": {"payment_id": str(payment.id)},
        },
    }


def test_valid_webhook_settles_payment(db, client, payment):
    body, headers = signed(approved(payment))

    response = client.post("/webhooks/fedapay", content=body, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"status": "success"}
    db.expire_all()
    assert payment.status == "completed"
    assert payment.order.payment_status == "paid"


def test_replayed_webhook_is_harmless(db, client, payment):
    body, headers = signed(approved(payment))

    client.post("/webhooks/fedapay", content=body, headers=headers)
    response = client.post("/webhooks/fedapay", content=body, headers=headers)

    assert response.status_code == 200
    db.expire_all()
    assert payment.status == "completed"


def test_missing_signature(client, payment):
    response = client.post("/webhooks/fedapay", content=json.dumps(approved(payment)).encode())

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Invalid signature"}


def test_wrong_signature(db, client, payment):
    body, headers = signed(approved(payment), secret="someone-else")

    response = client.post("/webhooks/fedapay", content=body, headers=headers)

    assert response.status_code == 403
    db.expire_all()
    assert payment.status == "pending"


def test_unconfigured_secret(client, payment, monkeypatch):
    monkeypatch.setattr(settings, "FEDAPAY_WEBHOOK_SECRET", None)
    body, headers = signed(approved(payment))

    response = client.post("/webhooks/fedapay", content=body, headers=headers)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Webhook configuration error"}


def test_processing_errors_still_return_200(client):
    body, headers = signed({"id": "evt-9", "entity": {"id": "tx-unknown", "status": "approved"}})

    response = client.post("/webhooks/fedapay", content=body, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"status": "success"}


def test_invalid_json_returns_200(client):
    body = b"not json"
    headers = {"X-FedaPay-Signature": compute_signature(body, "whsec_test")}

    response = client.post("/webhooks/fedapay", content=body, headers=headers)

    assert response.status_code == 200
