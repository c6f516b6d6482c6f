# storefront/repos/catalogue_repo.py
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.catalogue import CategoryModel, ProductModel, ProductVariationModel


class CatalogueRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_category(self, category_id: uuid.UUID) -> CategoryModel | None:
        return self.db.get(CategoryModel, category_id)

    def get_category_by_name(self, name: str) -> CategoryModel | None:
        return self.db.execute(
            select(CategoryModel).where(CategoryModel.name == name)
        ).scalar_one_or_none()

    def get_product(self, product_id: uuid.UUID) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_product_by_sku(self, sku: str) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(ProductModel.sku == sku)
        ).scalar_one_or_none()

    def get_variation_by_sku(self, sku: str) -> ProductVariationModel | None:
        return self.db.execute(
            select(ProductVariationModel).where(ProductVariationModel.sku == sku)
        ).scalar_one_or_none()

    def get_variation(self, variation_id: uuid.UUID) -> ProductVariationModel | None:
        return self.db.get(ProductVariationModel, variation_id)

    def add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
