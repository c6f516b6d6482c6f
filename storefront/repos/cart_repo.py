# storefront/repos/cart_repo.py
import uuid
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: uuid.UUID) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def get_cart_by_customer(self, customer_id: uuid.UUID) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.customer_id == customer_id)
        ).scalars().first()

    def get_cart_by_session(self, session_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.session_id == session_id)
        ).scalars().first()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_cart_item(self, cart_id: uuid.UUID, item_id: uuid.UUID) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.id == item_id,
            )
        ).scalar_one_or_none()

    def find_line(
        self,
        cart: CartModel,
        product_id: uuid.UUID,
        variation_id: uuid.UUID | None,
        options: dict | None,
    ) -> CartItemModel | None:
        # same product + variation + options -> same line
        for item in cart.items:
            if (
                item.product_id == product_id
                and item.variation_id == variation_id
                and (item.options or None) == (options or None)
            ):
                return item
        return None

    def delete_cart(self, cart: CartModel) -> None:
        self.db.delete(cart)
        self.db.flush()

    def update_cart_version(self, cart_id: uuid.UUID, old_version: int, new_data: dict) -> int:
        """
        Optimistic locking: UPDATE carts SET ... WHERE id = :id AND version = :old.
        Returns the number of affected rows, 0 means somebody else won.
        """
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_expired_guest_carts(self, now: datetime) -> int:
        expired = (
            select(CartModel.id)
            .where(
                CartModel.session_id.is_not(None),
                CartModel.expires_at.is_not(None),
                CartModel.expires_at < now,
            )
        )
        # items first, not every backend enforces ON DELETE CASCADE
        self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id.in_(expired))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(CartModel)
            .where(CartModel.id.in_(expired))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
