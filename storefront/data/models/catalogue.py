#storefront/data/models/catalogue.py
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Uuid
from sqlalchemy.orm import relationship

from storefront.data.database import Base, new_id


product_categories = Table(
    "product_categories",
    Base.metadata,
    Column("product_id", Uuid, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Uuid, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(Uuid, primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True)


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=False, unique=True)
    price = Column(Integer, nullable=False)

    # stock_quantity is a cache of the stock_movements ledger,
    # only InventoryService writes it
    track_inventory = Column(Boolean, nullable=False, default=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    categories = relationship("CategoryModel", secondary=product_categories, lazy="selectin")
    variations = relationship(
        "ProductVariationModel",
        back_populates="product",
        cascade="all, delete-orphan",
    )


class ProductVariationModel(Base):
    __tablename__ = "product_variations"

    id = Column(Uuid, primary_key=True, default=new_id)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(100), nullable=False, unique=True)
    variation_name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=True)  # None -> product price
    stock_quantity = Column(Integer, nullable=False, default=0)

    product = relationship("ProductModel", back_populates="variations")
