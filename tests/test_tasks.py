"""Celery tasks: guest cart sweep, stale order sweep and notifications."""
from unittest import mock

from kombu.exceptions import OperationalError

from storefront.data.models import CartItemModel, CartModel
from storefront.domain.enums import NotificationChannel, NotificationEvent, RecipientKind
from storefront.domain.schemas import CheckoutIn, Recipient
from storefront.services.inventory_service import InventoryService
from storefront.services.notification_service import NotificationService, send_notification_task
from storefront.services.order_creation_service import OrderCreationService
from storefront.tasks.expire import cancel_stale_orders_task, expire_carts_task

from conftest import checkout_payload, past


def test_expired_guest_carts_are_deleted(db, make_product, make_cart, make_customer):
    product = make_product()
    expired = make_cart(session_id="sess-old", lines=[(product, 1)])
    alive = make_cart(session_id="sess-new", lines=[(product, 1)])
    customer_cart = make_cart(customer=make_customer(), lines=[(product, 1)])
    expired.expires_at = past(days=1)
    db.commit()
    expired_id = expired.id

    assert expire_carts_task() == 1

    db.expire_all()
    remaining = {cart.id for cart in db.query(CartModel).all()}
    assert remaining == {alive.id, customer_cart.id}
    assert db.query(CartItemModel).filter_by(cart_id=expired_id).count() == 0


def test_stale_order_task_releases_stock(db, make_product, make_cart):
    product = make_product(stock=5)
    cart = make_cart(lines=[(product, 2)])
    order = OrderCreationService(db).create_order_from_cart(cart, CheckoutIn(**checkout_payload(cart)))
    order.created_at = past(hours=48)
    db.commit()

    assert cancel_stale_orders_task.delay().get() == 1

    db.expire_all()
    assert order.status == "cancelled"
    assert InventoryService(db).current_stock(product.id) == 5


def test_notification_task_logs_and_reports():
    recipient = {"kind": "customer", "id": None, "address": "buyer@mailbox.org"}

    result = send_notification_task(recipient, "order_created", "email", {"order_number": "ORD-1"})

    assert result == {"event": "order_created", "channel": "email", "status": "sent"}


def test_notification_without_address_is_skipped():
    recipient = {"kind": "customer", "id": None, "address": None}

    result = send_notification_task(recipient, "order_created", "sms", {})

    assert result["status"] == "skipped"


def test_notify_enqueues_one_task_per_channel():
    recipient = Recipient(kind=RecipientKind.CUSTOMER, address="buyer@mailbox.org")

    with mock.patch.object(send_notification_task, "delay") as delay:
        NotificationService().notify(
            recipient,
            NotificationEvent.PAYMENT_SUCCEEDED,
            {"order_number": "ORD-1"},
            channels=(NotificationChannel.EMAIL, NotificationChannel.DATABASE),
        )

    assert [c.args[2] for c in delay.call_args_list] == ["email", "database"]
    assert all(c.args[1] == "payment_succeeded" for c in delay.call_args_list)


def test_broker_outage_does_not_fail_the_caller():
    recipient = Recipient(kind=RecipientKind.CUSTOMER, address="buyer@mailbox.org")

    with mock.patch.object(send_notification_task, "delay", side_effect=OperationalError("broker down")):
        NotificationService().notify(recipient, NotificationEvent.ORDER_CREATED, {})


def test_checkout_sends_order_created(db, make_product, make_cart):
    cart = make_cart(lines=[(make_product(), 1)])

    with mock.patch.object(send_notification_task, "delay") as delay:
        order = OrderCreationService(db).create_order_from_cart(cart, CheckoutIn(**checkout_payload(cart)))

    recipient, event, channel, payload = delay.call_args.args
    assert event == "order_created"
    assert channel == "email"
    assert recipient["address"] == "buyer@mailbox.org"
    assert payload["order_number"] == order.order_number
