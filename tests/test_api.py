"""HTTP surface: routing, admin guard and the error envelope."""
import uuid
from types import SimpleNamespace

from storefront.data.models import OrderModel

from conftest import ADMIN_HEADERS, checkout_payload


def create_product(client, **fields):
    payload = {"name": "Shirt", "sku": f"SKU-{uuid.uuid4().hex[:8]}", "price": 5000, "stock_quantity": 10}
    payload.update(fields)
    response = client.post("/products/", json=payload, headers=ADMIN_HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


def guest_cart(client, session_id="sess-api"):
    response = client.post("/carts/", json={"session_id": session_id})
    assert response.status_code == 200, response.text
    return response.json()


def checkout_for(cart, session_id="sess-api", **overrides):
    return checkout_payload(SimpleNamespace(id=cart["id"], customer_id=None, session_id=session_id), **overrides)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_customer_registration(client):
    response = client.post("/customers/", json={"email": "Ada@Mailbox.org", "first_name": "Ada"})

    assert response.status_code == 201
    customer = response.json()
    assert customer["email"] == "ada@mailbox.org"
    assert client.get(f"/customers/{customer['id']}").json()["id"] == customer["id"]


def test_unknown_customer(client):
    response = client.get(f"/customers/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Customer not found"}


def test_admin_endpoints_need_token(client):
    payload = {"name": "Shirt", "sku": "SKU-1", "price": 5000}

    assert client.post("/products/", json=payload).status_code == 401
    assert client.post("/products/", json=payload, headers={"X-Admin-Token": "nope"}).status_code == 403
    assert client.post("/products/", json=payload, headers=ADMIN_HEADERS).status_code == 201


def test_validation_error_envelope(client):
    response = client.post("/carts/", json={})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["message"].startswith("Invalid request")


def test_out_of_stock_envelope(client):
    product = create_product(client, stock_quantity=1)
    cart = guest_cart(client)

    response = client.post(
        f"/carts/{cart['id']}/items",
        params={"session_id": "sess-api"},
        json={"product_id": product["id"], "quantity": 2},
    )

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": f"Insufficient stock for item: {product['name']}"}


def test_cart_of_someone_else(client):
    cart = guest_cart(client)

    response = client.get(f"/carts/{cart['id']}", params={"session_id": "intruder"})

    assert response.status_code == 403
    assert response.json()["success"] is False


def test_checkout_flow(db, client, gateway):
    product = create_product(client, price=5000, stock_quantity=10)
    promo = client.post(
        "/admin/promotions",
        json={"name": "Ten off", "code": "save10", "type": "percentage", "value": "10"},
        headers=ADMIN_HEADERS,
    )
    assert promo.status_code == 201
    assert promo.json()["code"] == "SAVE10"

    cart = guest_cart(client)
    owner = {"session_id": "sess-api"}
    cart = client.post(
        f"/carts/{cart['id']}/items", params=owner, json={"product_id": product["id"], "quantity": 2}
    ).json()
    cart = client.post(f"/carts/{cart['id']}/coupon", params=owner, json={"code": "SAVE10"}).json()
    assert cart["discount_amount"] == 1000
    assert cart["total"] == 9000

    payload = checkout_for(cart)
    response = client.post("/orders/", json=payload, headers={"Idempotency-Key": "idem-1"})
    assert response.status_code == 201, response.text
    order = response.json()
    assert order["total"] == 9000
    assert order["status"] == "pending"
    assert [h["note"] for h in order["status_histories"]] == ["Order created"]

    replay = client.post("/orders/", json=payload, headers={"Idempotency-Key": "idem-1"})
    assert replay.json()["id"] == order["id"]
    assert db.query(OrderModel).count() == 1

    stock = client.get(f"/products/{product['id']}").json()["stock_quantity"]
    assert stock == 8

    session = client.post("/payments/initialize", json={"order_id": order["id"]})
    assert session.status_code == 201, session.text
    assert session.json()["reference"] == "tx-1"

    payment = client.get(f"/payments/{session.json()['payment_id']}").json()
    assert payment["status"] == "pending"
    assert payment["amount"] == 9000


def test_checkout_of_empty_cart(client):
    cart = guest_cart(client)
    payload = checkout_for(cart)

    response = client.post("/orders/", json=payload)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Cart is empty"}


def test_cancel_and_admin_status(client):
    product = create_product(client, stock_quantity=5)
    cart = guest_cart(client)
    owner = {"session_id": "sess-api"}
    client.post(f"/carts/{cart['id']}/items", params=owner, json={"product_id": product["id"], "quantity": 1})
    payload = checkout_for(cart)
    order = client.post("/orders/", json=payload).json()

    shipped = client.patch(
        f"/admin/orders/{order['id']}/status", json={"status": "shipped", "note": "DHL"}, headers=ADMIN_HEADERS
    )
    assert shipped.json()["status"] == "shipped"

    response = client.post(f"/orders/{order['id']}/cancel", json={"reason": "Too late"})
    assert response.status_code == 422
    assert response.json() == {"success": False, "message": "Order cannot be cancelled in its current state."}


def test_inventory_endpoints(client):
    product = create_product(client, stock_quantity=10)

    adjusted = client.post(
        "/inventory/adjust",
        json={"product_id": product["id"], "operation": "sub", "quantity": 7, "reason": "damaged"},
        headers=ADMIN_HEADERS,
    )
    assert adjusted.status_code == 201, adjusted.text
    assert adjusted.json()["quantity_after"] == 3

    movements = client.get(
        "/inventory/movements", params={"product_id": product["id"]}, headers=ADMIN_HEADERS
    ).json()
    assert sorted(m["reason"] for m in movements) == ["damaged", "restock"]

    low = client.get("/inventory/low-stock", headers=ADMIN_HEADERS).json()
    assert [p["id"] for p in low] == [product["id"]]


def test_refund_through_admin(db, client, gateway):
    product = create_product(client, price=5000, stock_quantity=5)
    cart = guest_cart(client)
    owner = {"session_id": "sess-api"}
    client.post(f"/carts/{cart['id']}/items", params=owner, json={"product_id": product["id"], "quantity": 1})
    payload = checkout_for(cart)
    order = client.post("/orders/", json=payload).json()
    session = client.post("/payments/initialize", json={"order_id": order["id"]}).json()

    # not settled yet
    response = client.post(
        f"/admin/payments/{session['payment_id']}/refund", json={"reason": "Customer request"}, headers=ADMIN_HEADERS
    )
    assert response.status_code == 422
    assert response.json()["message"] == "Only completed payments can be refunded"


def test_coupon_given_at_checkout(client):
    product = create_product(client, price=5000, stock_quantity=5)
    client.post(
        "/admin/promotions",
        json={"name": "Flat", "code": "FLAT500", "type": "fixed_amount", "value": "500"},
        headers=ADMIN_HEADERS,
    )
    cart = guest_cart(client)
    client.post(
        f"/carts/{cart['id']}/items", params={"session_id": "sess-api"}, json={"product_id": product["id"], "quantity": 1}
    )

    response = client.post("/orders/", json=checkout_for(cart, coupon_code="flat500"))

    assert response.status_code == 201, response.text
    assert response.json()["coupon_code"] == "FLAT500"
    assert response.json()["total"] == 4500


def test_admin_cancellation_returns_stock(client):
    product = create_product(client, stock_quantity=10)
    cart = guest_cart(client)
    owner = {"session_id": "sess-api"}
    client.post(f"/carts/{cart['id']}/items", params=owner, json={"product_id": product["id"], "quantity": 3})
    order = client.post("/orders/", json=checkout_for(cart)).json()
    assert client.get(f"/products/{product['id']}").json()["stock_quantity"] == 7

    response = client.patch(
        f"/admin/orders/{order['id']}/status", json={"status": "cancelled"}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 200, response.text
    assert response.json()["status"] == "cancelled"
    assert client.get(f"/products/{product['id']}").json()["stock_quantity"] == 10
