# storefront/repos/inventory_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from storefront.data.models.catalogue import ProductModel, ProductVariationModel
from storefront.data.models.stock_movement import StockMovementModel


class InventoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def lock_product(self, product_id: uuid.UUID) -> ProductModel | None:
        # SELECT ... FOR UPDATE; reservations of the same product queue up here
        return self.db.execute(
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def lock_variation(self, variation_id: uuid.UUID) -> ProductVariationModel | None:
        return self.db.execute(
            select(ProductVariationModel)
            .where(ProductVariationModel.id == variation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_product(self, product_id: uuid.UUID) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_variation(self, variation_id: uuid.UUID) -> ProductVariationModel | None:
        return self.db.get(ProductVariationModel, variation_id)

    def compare_and_set_stock(self, model, row_id: uuid.UUID, before: int, after: int) -> int:
        """
        UPDATE <table> SET stock_quantity = :after WHERE id = :id AND stock_quantity = :before

        Returns the number of affected rows, 0 means another writer got there first.
        """
        result = self.db.execute(
            update(model)
            .where(model.id == row_id, model.stock_quantity == before)
            .values(stock_quantity=after)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def increment_product_stock(self, product_id: uuid.UUID, delta: int) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock_quantity=ProductModel.stock_quantity + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_movement(self, movement: StockMovementModel) -> StockMovementModel:
        self.db.add(movement)
        self.db.flush()
        return movement

    def ledger_balance(self, product_id: uuid.UUID, variation_id: uuid.UUID | None = None) -> int:
        query = select(func.coalesce(func.sum(StockMovementModel.quantity), 0)).where(
            StockMovementModel.product_id == product_id
        )
        if variation_id is not None:
            query = query.where(StockMovementModel.variation_id == variation_id)
        return int(self.db.execute(query).scalar_one())

    def net_movements_for_reference(self, reference_id: uuid.UUID) -> list[tuple]:
        """(product_id, variation_id, net quantity) for every line touched by a reference."""
        rows = self.db.execute(
            select(
                StockMovementModel.product_id,
                StockMovementModel.variation_id,
                func.sum(StockMovementModel.quantity),
            )
            .where(StockMovementModel.reference_id == reference_id)
            .group_by(StockMovementModel.product_id, StockMovementModel.variation_id)
        ).all()
        return [(product_id, variation_id, int(net)) for product_id, variation_id, net in rows]

    def list_movements(
        self,
        product_id: uuid.UUID | None = None,
        variation_id: uuid.UUID | None = None,
        movement_type: str | None = None,
        reason: str | None = None,
        reference_id: uuid.UUID | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[StockMovementModel]:
        filters = []
        if product_id is not None:
            filters.append(StockMovementModel.product_id == product_id)
        if variation_id is not None:
            filters.append(StockMovementModel.variation_id == variation_id)
        if movement_type:
            filters.append(StockMovementModel.type == movement_type)
        if reason:
            filters.append(StockMovementModel.reason == reason)
        if reference_id is not None:
            filters.append(StockMovementModel.reference_id == reference_id)
        if date_from is not None:
            filters.append(StockMovementModel.created_at >= date_from)
        if date_to is not None:
            filters.append(StockMovementModel.created_at <= date_to)

        query = select(StockMovementModel)
        if filters:
            query = query.where(*filters)

        query = query.order_by(StockMovementModel.created_at.desc()).limit(limit).offset(offset)
        return list(self.db.execute(query).scalars().all())

    def low_stock_products(self, threshold: int | None = None) -> list[ProductModel]:
        query = select(ProductModel).where(
            ProductModel.track_inventory.is_(True),
            ProductModel.stock_quantity > 0,
        )
        if threshold is not None:
            query = query.where(ProductModel.stock_quantity < threshold)
        else:
            # per product threshold, 10 when the product has none
            query = query.where(
                ProductModel.stock_quantity <= func.coalesce(ProductModel.low_stock_threshold, 10)
            )
        return list(self.db.execute(query.order_by(ProductModel.stock_quantity.asc())).scalars().all())

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
