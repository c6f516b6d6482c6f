from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id


class OrderStatusHistoryModel(Base):
    __tablename__ = "order_status_histories"

    id = Column(Uuid, primary_key=True, default=new_id)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    note = Column(Text, nullable=True)
    created_by = Column(Uuid, nullable=True)  # admin user, None for system/customer
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order = relationship("OrderModel", back_populates="status_histories")
