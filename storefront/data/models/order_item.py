from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=new_id)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Uuid, nullable=False)
    variation_id = Column(Uuid, nullable=True)

    # copied from the catalogue at checkout time
    product_name = Column(String(255), nullable=False)
    product_sku = Column(String(100), nullable=False)
    variation_name = Column(String(255), nullable=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)
    subtotal = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False)
    options = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order = relationship("OrderModel", back_populates="items")
