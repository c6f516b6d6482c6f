from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id
from storefront.domain.enums import CANCELLABLE_STATUSES, OrderPaymentStatus, OrderStatus


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Uuid, primary_key=True, default=new_id)
    order_number = Column(String(50), nullable=False, unique=True)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=True, index=True)  # None -> guest

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    payment_status = Column(String(20), nullable=False, default=OrderPaymentStatus.PENDING.value)
    payment_method = Column(String(50), nullable=True)

    # snapshots taken at checkout, never recomputed from the cart or catalogue
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)

    subtotal = Column(Integer, nullable=False)
    discount_amount = Column(Integer, nullable=False, default=0)
    tax_amount = Column(Integer, nullable=False, default=0)
    shipping_amount = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    coupon_code = Column(String(50), nullable=True)

    customer_note = Column(Text, nullable=True)
    admin_note = Column(Text, nullable=True)
    extra = Column("metadata", JSON, nullable=True)
    # "<cart id>:<idempotency key>", a key only ever replays orders of its own cart
    checkout_token = Column(String(300), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship("OrderItemModel", back_populates="order", order_by="OrderItemModel.created_at")
    status_histories = relationship(
        "OrderStatusHistoryModel",
        back_populates="order",
        order_by="OrderStatusHistoryModel.created_at",
    )
    payments = relationship("PaymentModel", back_populates="order", order_by="PaymentModel.created_at")

    def is_paid(self) -> bool:
        return self.payment_status == OrderPaymentStatus.PAID.value

    def can_be_cancelled(self) -> bool:
        return self.status in {s.value for s in CANCELLABLE_STATUSES} and not self.is_paid()
