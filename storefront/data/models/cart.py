#storefront/data/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id


class CartModel(Base):
    __tablename__ = "carts"
    __table_args__ = (
        # a cart belongs either to a customer or to an anonymous session
        CheckConstraint(
            "(customer_id IS NULL) <> (session_id IS NULL)",
            name="ck_carts_single_owner",
        ),
    )

    id = Column(Uuid, primary_key=True, default=new_id)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=True, index=True)
    session_id = Column(String(255), nullable=True, index=True)

    coupon_code = Column(String(50), nullable=True)
    discount_amount = Column(Integer, nullable=False, default=0)
    subtotal = Column(Integer, nullable=False, default=0)
    tax_amount = Column(Integer, nullable=False, default=0)
    shipping_amount = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False, default=0)

    version = Column(Integer, nullable=False, default=1)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItemModel.created_at",
    )
