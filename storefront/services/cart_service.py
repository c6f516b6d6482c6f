# storefront/services/cart_service.py
import uuid
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.exceptions import (
    ConcurrencyConflict,
    Forbidden,
    InvalidCoupon,
    NotFound,
    OutOfStock,
    ValidationError,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalogue_repo import CatalogueRepo
from storefront.repos.customer_repo import CustomerRepo
from storefront.services.inventory_service import InventoryService
from storefront.services.promotion_service import PromotionService
from storefront.utils import settings
from storefront.utils.dates import as_utc, utcnow
from storefront.utils.logging import get_logger
from storefront.utils.money import round_half_up

logger = get_logger(__name__)


class CartService:
    """
    Use case'y koszyka.

    query (get_owned_cart) tylko odczyt, commands (add, update, remove, coupon,
    merge) modyfikuja stan. Every command ends with recalculate() and a version
    bump: UPDATE carts SET version = v + 1 WHERE id = :id AND version = v, a lost
    race raises ConcurrencyConflict and nothing is committed.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CartRepo(db)
        self.catalogue = CatalogueRepo(db)
        self.customers = CustomerRepo(db)
        self.inventory = InventoryService(db)
        self.promotions = PromotionService(db)

    # =====================================================
    # QUERY
    # =====================================================
    def get_owned_cart(
        self,
        cart_id: uuid.UUID,
        customer_id: uuid.UUID | None = None,
        session_id: str | None = None,
    ) -> CartModel:
        cart = self.repo.get_cart(cart_id)

        if cart is None or self.is_expired(cart):
            raise NotFound("Cart not found")

        if cart.customer_id is not None:
            if cart.customer_id != customer_id:
                raise Forbidden("Access to this cart is denied")
        elif cart.session_id != session_id:
            raise Forbidden("Access to this cart is denied")

        return cart

    def is_expired(self, cart: CartModel) -> bool:
        expires_at = as_utc(cart.expires_at)
        return expires_at is not None and expires_at <= utcnow()

    # =====================================================
    # COMMANDS
    # =====================================================
    def get_or_create_cart(
        self,
        customer_id: uuid.UUID | None = None,
        session_id: str | None = None,
    ) -> CartModel:
        """Returns the owner's cart, creating it on first use."""
        if (customer_id is None) == (session_id is None):
            raise ValidationError("A cart belongs to exactly one customer or session")

        if customer_id is not None:
            if self.customers.get_customer(customer_id) is None:
                raise NotFound("Customer not found")
            existing = self.repo.get_cart_by_customer(customer_id)
        else:
            existing = self.repo.get_cart_by_session(session_id)

        if existing is not None and not self.is_expired(existing):
            return existing

        if existing is not None:
            # expired guest cart not swept yet
            self.repo.delete_cart(existing)

        cart = CartModel(customer_id=customer_id, session_id=session_id, version=1)
        if session_id is not None:
            cart.expires_at = utcnow() + timedelta(days=settings.GUEST_CART_TTL_DAYS)

        self.repo.create_cart(cart)
        self.repo.commit()

        logger.info(f"Utworzono nowy koszyk {cart.id} ({'customer' if customer_id else 'guest'})")
        return cart

    def add_item(
        self,
        cart: CartModel,
        product_id: uuid.UUID,
        quantity: int,
        variation_id: uuid.UUID | None = None,
        options: dict | None = None,
    ) -> CartModel:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")

        product = self.catalogue.get_product(product_id)
        if product is None:
            raise NotFound("Product not found")

        variation = None
        if variation_id is not None:
            variation = self.catalogue.get_variation(variation_id)
            if variation is None or variation.product_id != product.id:
                raise NotFound("Product variation not found")
        elif product.variations:
            raise ValidationError("Please choose a product variation")

        unit_price = variation.price if variation is not None and variation.price is not None else product.price

        try:
            line = self.repo.find_line(cart, product_id, variation_id, options)
            new_quantity = quantity + (line.quantity if line else 0)

            if not self.inventory.check_availability(product_id, new_quantity, variation_id):
                raise OutOfStock(f"Insufficient stock for item: {product.name}")

            if line is not None:
                logger.info(
                    f"Produkt {product_id} juz jest w koszyku, zwiekszam ilosc "
                    f"z {line.quantity} do {new_quantity}"
                )
                line.quantity = new_quantity
                line.price = unit_price
            else:
                cart.items.append(
                    CartItemModel(
                        product=product,
                        variation=variation,
                        product_id=product.id,
                        variation_id=variation_id,
                        quantity=quantity,
                        price=unit_price,
                        options=options or None,
                    )
                )

            self.recalculate(cart)
            self._bump_version(cart)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Produkt {product_id} dodany do koszyka {cart.id}, nowa wersja: {cart.version}")
        return cart

    def update_item(self, cart: CartModel, item_id: uuid.UUID, quantity: int) -> CartModel:
        item = self.repo.get_cart_item(cart.id, item_id)
        if item is None:
            raise NotFound("Cart item not found")

        if quantity <= 0:
            return self.remove_item(cart, item_id)

        try:
            if not self.inventory.check_availability(item.product_id, quantity, item.variation_id):
                raise OutOfStock(f"Insufficient stock for item: {item.product.name}")

            item.quantity = quantity
            self.recalculate(cart)
            self._bump_version(cart)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        return cart

    def remove_item(self, cart: CartModel, item_id: uuid.UUID) -> CartModel:
        item = self.repo.get_cart_item(cart.id, item_id)
        if item is None:
            raise NotFound("Cart item not found")

        try:
            cart.items.remove(item)
            self.recalculate(cart)
            self._bump_version(cart)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Pozycja {item_id} usunieta z koszyka {cart.id}")
        return cart

    def apply_coupon(self, cart: CartModel, code: str) -> CartModel:
        if not cart.items:
            raise InvalidCoupon("Add items to your cart before applying a coupon.")

        promotion = self.promotions.validate(code, cart)

        try:
            cart.coupon_code = promotion.code
            self.recalculate(cart)
            self._bump_version(cart)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Kupon {promotion.code} zastosowany do koszyka {cart.id}")
        return cart

    def remove_coupon(self, cart: CartModel) -> CartModel:
        try:
            cart.coupon_code = None
            self.recalculate(cart)
            self._bump_version(cart)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        return cart

    def clear_cart(self, cart: CartModel) -> None:
        """Empties the cart inside the caller's transaction (no commit)."""
        cart.items.clear()
        cart.coupon_code = None
        self.recalculate(cart)
        self._bump_version(cart)

    def merge_carts(self, guest_cart: CartModel, customer_cart: CartModel) -> CartModel:
        """Moves the lines of a guest cart into the customer's cart after login."""
        if guest_cart.session_id is None or customer_cart.customer_id is None:
            raise ValidationError("Only a guest cart can be merged into a customer cart")

        try:
            for item in list(guest_cart.items):
                line = self.repo.find_line(customer_cart, item.product_id, item.variation_id, item.options)
                if line is not None:
                    line.quantity += item.quantity
                else:
                    customer_cart.items.append(
                        CartItemModel(
                            product=item.product,
                            variation=item.variation,
                            product_id=item.product_id,
                            variation_id=item.variation_id,
                            quantity=item.quantity,
                            price=item.price,
                            options=item.options,
                        )
                    )

            if customer_cart.coupon_code is None and guest_cart.coupon_code:
                customer_cart.coupon_code = guest_cart.coupon_code

            self.repo.delete_cart(guest_cart)
            self.recalculate(customer_cart)
            self._bump_version(customer_cart)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Koszyk goscia {guest_cart.id} polaczony z koszykiem {customer_cart.id}")
        return customer_cart

    # =====================================================
    # TOTALS
    # =====================================================
    def recalculate(self, cart: CartModel) -> CartModel:
        """
        Derived fields, recomputed explicitly after every mutation:

        total = subtotal + tax + shipping - discount, discount <= subtotal
        """
        for item in cart.items:
            item.subtotal = item.price * item.quantity

        cart.subtotal = sum(item.subtotal for item in cart.items)
        cart.tax_amount = round_half_up(Decimal(cart.subtotal) * Decimal(settings.CART_TAX_RATE))
        cart.shipping_amount = self.shipping_for(cart.subtotal) if cart.items else 0

        discount = 0
        if cart.coupon_code:
            try:
                promotion = self.promotions.validate(cart.coupon_code, cart)
                discount = self.promotions.calculate_discount(
                    promotion, self.promotions.eligible_amount(promotion, cart)
                )
            except InvalidCoupon as e:
                logger.info(f"Kupon {cart.coupon_code} usuniety z koszyka {cart.id}: {e.message}")
                cart.coupon_code = None

        cart.discount_amount = min(discount, cart.subtotal)
        cart.total = cart.subtotal + cart.tax_amount + cart.shipping_amount - cart.discount_amount
        return cart

    def shipping_for(self, subtotal: int) -> int:
        threshold = settings.SHIPPING_FREE_THRESHOLD
        if threshold is not None and subtotal >= threshold:
            return 0
        return settings.SHIPPING_FLAT_AMOUNT

    def _bump_version(self, cart: CartModel) -> None:
        # Optimistic locking: UPDATE carts SET version = 2 WHERE id = :id AND version = 1
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={"version": cart.version + 1},
        )
        if rowcount == 0:
            logger.warning(f"Konflikt wspolbieznosci na koszyku {cart.id} (wersja {cart.version})")
            raise ConcurrencyConflict()
        set_committed_value(cart, "version", cart.version + 1)

