# storefront/services/catalogue_service.py
import uuid

from sqlalchemy.orm import Session

from storefront.data.models.catalogue import CategoryModel, ProductModel, ProductVariationModel
from storefront.domain.enums import StockReason
from storefront.domain.exceptions import NotFound, ValidationError
from storefront.domain.schemas import CategoryCreate, ProductCreate, VariationCreate
from storefront.repos.catalogue_repo import CatalogueRepo
from storefront.services.inventory_service import InventoryService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogueService:
    """
    Minimal catalogue: enough products and variations for carts and orders.

    Initial stock is never written straight into stock_quantity, it goes through
    the ledger as a restock movement.
    """

    def __init__(self, db: Session):
        self.repo = CatalogueRepo(db)
        self.inventory = InventoryService(db)

    def create_category(self, payload: CategoryCreate) -> CategoryModel:
        if self.repo.get_category_by_name(payload.name):
            raise ValidationError(f"Category '{payload.name}' already exists")

        category = self.repo.add(CategoryModel(name=payload.name))
        self.repo.commit()
        return category

    def create_product(self, payload: ProductCreate, created_by: uuid.UUID | None = None) -> ProductModel:
        if self.repo.get_product_by_sku(payload.sku):
            raise ValidationError(f"SKU '{payload.sku}' already exists")

        categories = []
        for category_id in payload.category_ids:
            category = self.repo.get_category(category_id)
            if category is None:
                raise NotFound("Category not found")
            categories.append(category)

        try:
            product = self.repo.add(
                ProductModel(
                    name=payload.name,
                    sku=payload.sku,
                    price=payload.price,
                    track_inventory=payload.track_inventory,
                    stock_quantity=0,
                    low_stock_threshold=payload.low_stock_threshold,
                    categories=categories,
                )
            )

            if payload.stock_quantity and payload.track_inventory:
                self.inventory.record_movement(
                    product.id,
                    payload.stock_quantity,
                    StockReason.RESTOCK,
                    notes="Initial stock",
                    created_by=created_by,
                )
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Product {product.sku} created with stock {product.stock_quantity}")
        return product

    def add_variation(
        self,
        product_id: uuid.UUID,
        payload: VariationCreate,
        created_by: uuid.UUID | None = None,
    ) -> ProductVariationModel:
        product = self.get_product(product_id)

        if self.repo.get_variation_by_sku(payload.sku):
            raise ValidationError(f"SKU '{payload.sku}' already exists")
        if not product.variations and product.stock_quantity:
            raise ValidationError("Bring the product stock to 0 before adding variations")

        try:
            variation = self.repo.add(
                ProductVariationModel(
                    product_id=product.id,
                    sku=payload.sku,
                    variation_name=payload.variation_name,
                    price=payload.price,
                    stock_quantity=0,
                )
            )
            product.variations.append(variation)

            if payload.stock_quantity and product.track_inventory:
                self.inventory.record_movement(
                    product.id,
                    payload.stock_quantity,
                    StockReason.RESTOCK,
                    variation_id=variation.id,
                    notes="Initial stock",
                    created_by=created_by,
                )
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        return variation

    def get_product(self, product_id: uuid.UUID) -> ProductModel:
        product = self.repo.get_product(product_id)
        if product is None:
            raise NotFound("Product not found")
        return product
