from datetime import datetime, timezone

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, ForeignKey, Integer, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id


class CartItemModel(Base):
    __tablename__ = "cart_items"
    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_cart_items_quantity"),)

    id = Column(Uuid, primary_key=True, default=new_id)
    cart_id = Column(Uuid, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    variation_id = Column(Uuid, ForeignKey("product_variations.id"), nullable=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # unit price snapshot
    subtotal = Column(Integer, nullable=False, default=0)
    options = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    cart = relationship("CartModel", back_populates="items")
    product = relationship("ProductModel")
    variation = relationship("ProductVariationModel")
