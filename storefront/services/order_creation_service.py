# storefront/services/order_creation_service.py
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.enums import NotificationEvent, OrderPaymentStatus, OrderStatus
from storefront.domain.exceptions import DuplicateCheckout, EmptyCart, OutOfStock
from storefront.domain.schemas import CheckoutIn
from storefront.repos.order_repo import OrderRepo
from storefront.services.cart_service import CartService
from storefront.services.inventory_service import InventoryService
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.promotion_service import PromotionService
from storefront.utils.dates import utcnow
from storefront.utils.logging import get_logger
from storefront.utils.settings import CHECKOUT_LOCK_TTL_SECONDS, ORDER_NUMBER_PREFIX, PAYMENT_CURRENCY

logger = get_logger(__name__)


def generate_order_number() -> str:
    # ORD-20240131-3FA85F
    return f"{ORDER_NUMBER_PREFIX}-{utcnow():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


class OrderCreationService:
    """
    Use Case: tworzenie zamowienia z koszyka.

    One database transaction, all or nothing:

    1. pusty koszyk -> EmptyCart
    2. stock check of every line -> OutOfStock
    3. order row, totals copied from the cart
    4. order items (catalogue snapshot) + sale movements
    5. coupon re-validated and its usage recorded
    6. initial status history
    7. cart cleared

    Notifications leave only after the commit.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_service = CartService(db)
        self.inventory = InventoryService(db)
        self.promotions = PromotionService(db)
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()

    def checkout(
        self,
        cart: CartModel,
        checkout: CheckoutIn,
        idempotency_key: str | None = None,
    ) -> OrderModel:
        """
        create_order_from_cart guarded by a client supplied idempotency key.

        A replayed key returns the order it already produced, a concurrent
        duplicate gets DuplicateCheckout while the first one is still running.
        """
        if not idempotency_key:
            return self.create_order_from_cart(cart, checkout)

        token = self.checkout_token(cart, idempotency_key)
        existing = self.repo.get_by_checkout_token(token)
        if existing is not None:
            logger.info(f"Checkout {token} replayed, returning order {existing.order_number}")
            return existing

        owner = str(cart.id)
        if not self.lock_service.acquire_checkout_lock(token, owner, CHECKOUT_LOCK_TTL_SECONDS):
            raise DuplicateCheckout()

        try:
            existing = self.repo.get_by_checkout_token(token)
            if existing is not None:
                return existing
            return self.create_order_from_cart(cart, checkout, checkout_token=token)
        finally:
            self.lock_service.release_checkout_lock(token, owner)

    @staticmethod
    def checkout_token(cart: CartModel, idempotency_key: str) -> str:
        # the same key sent for another cart is a different checkout
        return f"{cart.id}:{idempotency_key}"

    def create_order_from_cart(
        self,
        cart: CartModel,
        checkout: CheckoutIn,
        checkout_token: str | None = None,
    ) -> OrderModel:
        try:
            order = self._create_order(cart, checkout, checkout_token)
            self.repo.commit()
        except IntegrityError:
            self.repo.rollback()
            if checkout_token and self.repo.get_by_checkout_token(checkout_token) is not None:
                raise DuplicateCheckout()
            raise
        except Exception:
            self.repo.rollback()
            raise

        logger.info(
            f"Order {order.order_number} created from cart {cart.id} "
            f"(total {order.total} {order.currency}, {len(order.items)} item(s))"
        )

        # po commicie: powiadomienie asynchronicznie
        self.notification_service.order_event(order, NotificationEvent.ORDER_CREATED)
        return order

    def _create_order(
        self,
        cart: CartModel,
        checkout: CheckoutIn,
        checkout_token: str | None,
    ) -> OrderModel:
        # 1. koszyk nie moze byc pusty
        if not cart.items:
            raise EmptyCart()

        # 2. stock of every line, first failure aborts
        for item in cart.items:
            if not self.inventory.check_availability(item.product_id, item.quantity, item.variation_id):
                raise OutOfStock(f"Insufficient stock for item: {item.product.name}")

        # 3. order with the cart totals as they are, nothing recomputed
        shipping_address = checkout.shipping_address.model_dump()
        billing_address = (
            checkout.billing_address.model_dump() if checkout.billing_address else shipping_address
        )

        order = self.repo.create_order(
            OrderModel(
                order_number=generate_order_number(),
                customer_id=cart.customer_id,
                status=OrderStatus.PENDING.value,
                payment_status=OrderPaymentStatus.PENDING.value,
                payment_method=checkout.payment_method,
                customer_email=checkout.customer_email,
                customer_phone=checkout.customer_phone,
                shipping_address=shipping_address,
                billing_address=billing_address,
                subtotal=cart.subtotal,
                discount_amount=cart.discount_amount,
                tax_amount=cart.tax_amount,
                shipping_amount=cart.shipping_amount,
                total=cart.total,
                currency=PAYMENT_CURRENCY,
                coupon_code=cart.coupon_code,
                customer_note=checkout.customer_note,
                extra=checkout.metadata,
                checkout_token=checkout_token,
            )
        )

        # 4. snapshot of every line + stock reservation
        for item in cart.items:
            variation = item.variation
            order.items.append(
                OrderItemModel(
                    product_id=item.product_id,
                    variation_id=item.variation_id,
                    product_name=item.product.name,
                    product_sku=variation.sku if variation is not None else item.product.sku,
                    variation_name=variation.variation_name if variation is not None else None,
                    quantity=item.quantity,
                    price=item.price,
                    subtotal=item.subtotal,
                    discount_amount=0,
                    total=item.subtotal,
                    options=item.options,
                )
            )
            self.inventory.reserve_stock(item.product_id, item.quantity, item.variation_id, order.id)

        # 5. kupon sprawdzany jeszcze raz, mogl sie wyczerpac od czasu dodania do koszyka
        if cart.coupon_code:
            promotion = self.promotions.validate(cart.coupon_code, cart)
            self.promotions.record_usage(promotion, order.id, cart.customer_id, cart.discount_amount)

        # 6. historia statusow
        self.repo.add_history(order.id, OrderStatus.PENDING.value, "Order created")

        # 7. wyczysc koszyk
        self.cart_service.clear_cart(cart)

        self.db.flush()
        return order
