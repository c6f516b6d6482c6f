from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from storefront.data.database import Base, new_id


class StockMovementModel(Base):
    """Append-only; corrections are new rows, never updates or deletes."""

    __tablename__ = "stock_movements"

    id = Column(Uuid, primary_key=True, default=new_id)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)
    variation_id = Column(Uuid, ForeignKey("product_variations.id"), nullable=True, index=True)

    type = Column(String(20), nullable=False)
    reason = Column(String(20), nullable=False)
    quantity = Column(Integer, nullable=False)  # signed delta
    quantity_before = Column(Integer, nullable=False)
    quantity_after = Column(Integer, nullable=False)

    reference_id = Column(Uuid, nullable=True, index=True)
    reference_type = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Uuid, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
