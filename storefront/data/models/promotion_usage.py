from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Uuid

from storefront.data.database import Base, new_id


class PromotionUsageModel(Base):
    # audit log, ids are weak references on purpose (no FK, no cascade)
    __tablename__ = "promotion_usages"

    id = Column(Uuid, primary_key=True, default=new_id)
    promotion_id = Column(Uuid, nullable=False, index=True)
    customer_id = Column(Uuid, nullable=True, index=True)
    order_id = Column(Uuid, nullable=True)
    discount_amount = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
