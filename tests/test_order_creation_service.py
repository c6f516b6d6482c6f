"""Checkout: one transaction from cart to order, all or nothing."""
import pytest

from storefront.data.models import (
    OrderModel,
    OrderStatusHistoryModel,
    PromotionUsageModel,
    StockMovementModel,
)
from storefront.domain.exceptions import DuplicateCheckout, EmptyCart, InvalidCoupon, OutOfStock
from storefront.domain.schemas import CheckoutIn
from storefront.services.cart_service import CartService
from storefront.services.inventory_service import InventoryService
from storefront.services.order_creation_service import OrderCreationService, generate_order_number

from conftest import checkout_payload


def checkout_data(cart, **overrides) -> CheckoutIn:
    return CheckoutIn(**checkout_payload(cart, **overrides))


def test_order_number_format():
    number = generate_order_number()
    prefix, date, suffix = number.split("-")

    assert prefix == "ORD"
    assert len(date) == 8 and date.isdigit()
    assert len(suffix) == 6


def test_order_copies_cart_totals_and_reserves_stock(db, make_product, make_cart):
    shirt = make_product(price=5000, stock=10)
    mug = make_product(price=1500, stock=4)
    cart = make_cart(lines=[(shirt, 2), (mug, 1)])

    order = OrderCreationService(db, lock_service=None).create_order_from_cart(cart, checkout_data(cart))

    assert order.status == "pending"
    assert order.payment_status == "pending"
    assert order.subtotal == 11500
    assert order.total == 11500
    assert order.currency == "XOF"
    assert order.billing_address == order.shipping_address
    assert len(order.items) == 2
    assert {item.product_sku for item in order.items} == {shirt.sku, mug.sku}

    inventory = InventoryService(db)
    assert inventory.current_stock(shirt.id) == 8
    assert inventory.current_stock(mug.id) == 3
    assert inventory.ledger_balance(shirt.id) == 8

    sales = db.query(StockMovementModel).filter_by(reference_id=order.id).all()
    assert sorted(m.quantity for m in sales) == [-2, -1]

    histories = db.query(OrderStatusHistoryModel).filter_by(order_id=order.id).all()
    assert [(h.status, h.note) for h in histories] == [("pending", "Order created")]

    db.refresh(cart)
    assert cart.items == []
    assert cart.total == 0


def test_item_snapshot_survives_catalogue_changes(db, make_product, make_cart):
    product = make_product(price=5000)
    cart = make_cart(lines=[(product, 1)])
    order = OrderCreationService(db).create_order_from_cart(cart, checkout_data(cart))

    product.name = "Renamed"
    product.price = 9999
    db.commit()

    item = order.items[0]
    assert item.product_name != "Renamed"
    assert item.price == 5000


def test_empty_cart_is_rejected(db, make_cart):
    cart = make_cart()

    with pytest.raises(EmptyCart):
        OrderCreationService(db).create_order_from_cart(cart, checkout_data(cart))

    assert db.query(OrderModel).count() == 0


def test_out_of_stock_line_aborts_checkout(db, make_product, make_cart):
    plenty = make_product(stock=10)
    scarce = make_product(stock=2)
    cart = make_cart(lines=[(plenty, 1), (scarce, 2)])

    # someone else bought the last units after they went into the cart
    InventoryService(db).reserve_stock(scarce.id, 1, None, order_id=scarce.id)
    db.commit()

    with pytest.raises(OutOfStock):
        OrderCreationService(db).create_order_from_cart(cart, checkout_data(cart))

    assert db.query(OrderModel).count() == 0
    assert InventoryService(db).current_stock(plenty.id) == 10
    assert len(cart.items) == 2


def test_failure_after_reservation_rolls_everything_back(db, make_product, make_cart, make_promotion):
    product = make_product(price=5000, stock=5)
    promotion = make_promotion(usage_limit=1)
    cart = make_cart(lines=[(product, 2)])
    CartService(db).apply_coupon(cart, "SAVE10")
    movements_before = db.query(StockMovementModel).count()

    # the last redemption goes to another order while this cart waits
    promotion.usage_count = 1
    db.commit()

    with pytest.raises(InvalidCoupon):
        OrderCreationService(db).create_order_from_cart(cart, checkout_data(cart))

    assert db.query(OrderModel).count() == 0
    assert db.query(OrderStatusHistoryModel).count() == 0
    assert db.query(PromotionUsageModel).count() == 0
    assert db.query(StockMovementModel).count() == movements_before
    assert InventoryService(db).current_stock(product.id) == 5
    assert len(cart.items) == 1
    assert cart.coupon_code == "SAVE10"


def test_coupon_usage_recorded_with_order(db, make_product, make_customer, make_cart, make_promotion):
    promotion = make_promotion(usage_limit=5)
    customer = make_customer()
    cart = make_cart(customer=customer, lines=[(make_product(price=5000), 2)])
    CartService(db).apply_coupon(cart, "SAVE10")

    order = OrderCreationService(db).create_order_from_cart(cart, checkout_data(cart))

    assert order.discount_amount == 1000
    assert order.total == 9000
    assert order.coupon_code == "SAVE10"
    assert order.customer_id == customer.id

    db.refresh(promotion)
    assert promotion.usage_count == 1
    usage = db.query(PromotionUsageModel).one()
    assert usage.order_id == order.id
    assert usage.customer_id == customer.id
    assert usage.discount_amount == 1000


def test_idempotency_key_replays_the_same_order(db, make_product, make_cart, lock_service):
    product = make_product(stock=5)
    cart = make_cart(lines=[(product, 1)])
    service = OrderCreationService(db, lock_service=lock_service)

    first = service.checkout(cart, checkout_data(cart), idempotency_key="key-1")
    second = service.checkout(cart, checkout_data(cart), idempotency_key="key-1")

    assert first.id == second.id
    assert db.query(OrderModel).count() == 1
    assert InventoryService(db).current_stock(product.id) == 4
    assert lock_service.locks == {}


def test_concurrent_checkout_with_same_key(db, make_product, make_cart, lock_service):
    cart = make_cart(lines=[(make_product(), 1)])
    token = OrderCreationService.checkout_token(cart, "key-2")
    lock_service.acquire_checkout_lock(token, "another-request", 60)

    with pytest.raises(DuplicateCheckout):
        OrderCreationService(db, lock_service=lock_service).checkout(
            cart, checkout_data(cart), idempotency_key="key-2"
        )

    assert db.query(OrderModel).count() == 0
    assert lock_service.locks == {token: "another-request"}


def test_same_key_from_another_cart_is_a_separate_checkout(db, make_product, make_cart, lock_service):
    product = make_product(stock=5)
    first_cart = make_cart(session_id="sess-a", lines=[(product, 1)])
    second_cart = make_cart(session_id="sess-b", lines=[(product, 2)])
    service = OrderCreationService(db, lock_service=lock_service)

    first = service.checkout(first_cart, checkout_data(first_cart), idempotency_key="k1")
    second = service.checkout(
        second_cart,
        checkout_data(second_cart, customer_email="other@mailbox.org"),
        idempotency_key="k1",
    )

    assert second.id != first.id
    assert second.customer_email == "other@mailbox.org"
    assert [item.quantity for item in second.items] == [2]
    assert second_cart.items == []
    assert db.query(OrderModel).count() == 2
    assert InventoryService(db).current_stock(product.id) == 2
