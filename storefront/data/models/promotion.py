from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String, Text, Uuid

from storefront.data.database import Base, new_id
from storefront.domain.enums import PromotionType


class PromotionModel(Base):
    __tablename__ = "promotions"

    id = Column(Uuid, primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, unique=True)  # stored upper-case
    description = Column(Text, nullable=True)

    type = Column(String(20), nullable=False, default=PromotionType.PERCENTAGE.value)
    value = Column(Numeric(10, 2), nullable=False)
    min_purchase_amount = Column(Integer, nullable=True)
    max_discount_amount = Column(Integer, nullable=True)

    usage_limit = Column(Integer, nullable=True)
    usage_limit_per_customer = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    # lists of product / category ids as strings, empty or None -> applies to everything
    applicable_products = Column(JSON, nullable=True)
    applicable_categories = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def has_allowlist(self) -> bool:
        return bool(self.applicable_products) or bool(self.applicable_categories)
