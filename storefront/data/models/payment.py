from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id
from storefront.domain.enums import PaymentStatus, RefundStatus


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=new_id)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False, index=True)

    gateway = Column(String(30), nullable=False)
    gateway_reference = Column(String(255), nullable=True, index=True)  # id handed out at initialisation
    transaction_id = Column(String(255), nullable=True, unique=True)  # set once settled
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    payment_method = Column(String(50), nullable=True)
    gateway_response = Column(JSON, nullable=True)
    extra = Column("metadata", JSON, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    order = relationship("OrderModel", back_populates="payments")
    refunds = relationship("RefundModel", back_populates="payment", order_by="RefundModel.created_at")

    def refunded_amount(self) -> int:
        return sum(r.amount for r in self.refunds if r.status == RefundStatus.COMPLETED.value)
