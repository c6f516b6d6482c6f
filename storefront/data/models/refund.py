from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id
from storefront.domain.enums import RefundStatus


class RefundModel(Base):
    __tablename__ = "refunds"

    id = Column(Uuid, primary_key=True, default=new_id)
    payment_id = Column(Uuid, ForeignKey("payments.id"), nullable=False, index=True)
    refund_id = Column(String(255), nullable=True, unique=True)  # gateway side id
    amount = Column(Integer, nullable=False)
    reason = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=RefundStatus.PENDING.value)
    gateway_response = Column(JSON, nullable=True)
    created_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    payment = relationship("PaymentModel", back_populates="refunds")
