from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Uuid

from storefront.data.database import Base, new_id


class CustomerModel(Base):
    __tablename__ = "customers"

    id = Column(Uuid, primary_key=True, default=new_id)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
