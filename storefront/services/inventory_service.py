# storefront/services/inventory_service.py
import uuid

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from storefront.data.models.catalogue import ProductModel, ProductVariationModel
from storefront.data.models.order import OrderModel
from storefront.data.models.stock_movement import StockMovementModel
from storefront.domain.enums import MovementType, StockOperation, StockReason
from storefront.domain.exceptions import NotFound, OutOfStock, ValidationError
from storefront.repos.inventory_repo import InventoryRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_REFERENCE = "order"


class InventoryService:
    """
    Stock ledger.

    stock_movements is the audit log, products.stock_quantity and
    product_variations.stock_quantity are caches of it. Nothing else in the
    code base writes those columns. Writes go through record_movement, which:

    - locks the product (and variation) row,
    - moves the counter with UPDATE ... WHERE stock_quantity = :before,
    - appends the movement row.

    record_movement never commits, it runs inside the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = InventoryRepo(db)

    # =====================================================
    # QUERIES
    # =====================================================
    def check_availability(
        self,
        product_id: uuid.UUID,
        quantity: int,
        variation_id: uuid.UUID | None = None,
    ) -> bool:
        product = self.repo.get_product(product_id)
        if product is None:
            return False

        if not product.track_inventory:
            return True

        if variation_id is not None:
            variation = self.repo.get_variation(variation_id)
            if variation is None or variation.product_id != product.id:
                return False
            return variation.stock_quantity >= quantity

        return product.stock_quantity >= quantity

    def current_stock(self, product_id: uuid.UUID, variation_id: uuid.UUID | None = None) -> int:
        product = self.repo.get_product(product_id)
        if product is None:
            raise NotFound("Product not found")

        if variation_id is not None:
            variation = self.repo.get_variation(variation_id)
            if variation is None or variation.product_id != product.id:
                raise NotFound("Product variation not found")
            return variation.stock_quantity

        return product.stock_quantity

    def ledger_balance(self, product_id: uuid.UUID, variation_id: uuid.UUID | None = None) -> int:
        """Sum of the movement log, what current_stock has to agree with."""
        return self.repo.ledger_balance(product_id, variation_id)

    def list_movements(self, **filters) -> list[StockMovementModel]:
        return self.repo.list_movements(**filters)

    def low_stock_items(self, threshold: int | None = None) -> list[ProductModel]:
        return self.repo.low_stock_products(threshold)

    # =====================================================
    # COMMANDS
    # =====================================================
    def record_movement(
        self,
        product_id: uuid.UUID,
        quantity: int,
        reason: StockReason,
        variation_id: uuid.UUID | None = None,
        reference_id: uuid.UUID | None = None,
        reference_type: str | None = None,
        notes: str | None = None,
        created_by: uuid.UUID | None = None,
    ) -> StockMovementModel | None:
        """
        Apply a signed stock delta and append it to the ledger.

        Returns None when the product does not track inventory. Raises OutOfStock
        if the delta would take the stock below zero or a concurrent writer moved
        the counter between our read and our update.
        """
        product = self.repo.lock_product(product_id)
        if product is None:
            raise NotFound("Product not found")

        if not product.track_inventory:
            logger.debug(f"Product {product_id} does not track inventory, no movement recorded")
            return None

        target = product
        if variation_id is not None:
            variation = self.repo.lock_variation(variation_id)
            if variation is None or variation.product_id != product.id:
                raise NotFound("Product variation not found")
            target = variation
        elif product.variations:
            raise ValidationError(
                f"Product '{product.sku}' has variations, a variation must be given"
            )

        before = target.stock_quantity
        after = before + quantity

        if after < 0:
            raise OutOfStock(
                f"Insufficient stock for '{target.sku}': "
                f"{before} available, {-quantity} requested"
            )

        rowcount = self.repo.compare_and_set_stock(type(target), target.id, before, after)
        if rowcount == 0:
            logger.warning(f"Stock of {target.sku} changed concurrently, movement rejected")
            raise OutOfStock(f"Stock for '{target.sku}' changed, please retry")
        set_committed_value(target, "stock_quantity", after)

        # the product counter is the sum of its variations
        if isinstance(target, ProductVariationModel):
            self.repo.increment_product_stock(product.id, quantity)
            set_committed_value(product, "stock_quantity", product.stock_quantity + quantity)

        movement = self.repo.add_movement(
            StockMovementModel(
                product_id=product.id,
                variation_id=variation_id,
                type=MovementType.for_delta(quantity).value,
                reason=StockReason(reason).value,
                quantity=quantity,
                quantity_before=before,
                quantity_after=after,
                reference_id=reference_id,
                reference_type=reference_type,
                notes=notes,
                created_by=created_by,
            )
        )

        logger.info(
            f"Stock movement {movement.reason} {quantity:+d} on {target.sku}: {before} -> {after}"
        )
        return movement

    def reserve_stock(
        self,
        product_id: uuid.UUID,
        quantity: int,
        variation_id: uuid.UUID | None,
        order_id: uuid.UUID,
    ) -> StockMovementModel | None:
        return self.record_movement(
            product_id=product_id,
            quantity=-quantity,
            reason=StockReason.SALE,
            variation_id=variation_id,
            reference_id=order_id,
            reference_type=ORDER_REFERENCE,
        )

    def release_order_stock(
        self,
        order: OrderModel,
        created_by: uuid.UUID | None = None,
    ) -> list[StockMovementModel]:
        """
        Put back what the order took out.

        Writes one return movement per line whose net movement for the order is
        still negative, so calling it again is a no-op.
        """
        released = []
        for product_id, variation_id, net in self.repo.net_movements_for_reference(order.id):
            if net >= 0:
                continue

            movement = self.record_movement(
                product_id=product_id,
                quantity=-net,
                reason=StockReason.RETURN,
                variation_id=variation_id,
                reference_id=order.id,
                reference_type=ORDER_REFERENCE,
                notes=f"Released from order {order.order_number}",
                created_by=created_by,
            )
            if movement is not None:
                released.append(movement)

        if released:
            logger.info(f"Released stock of {len(released)} line(s) for order {order.order_number}")
        return released

    def adjust_stock(
        self,
        product_id: uuid.UUID,
        operation: StockOperation,
        quantity: int,
        reason: StockReason,
        variation_id: uuid.UUID | None = None,
        notes: str | None = None,
        created_by: uuid.UUID | None = None,
    ) -> StockMovementModel:
        """Manual back-office correction: set / add / sub. Commits."""
        operation = StockOperation(operation)

        if operation in (StockOperation.ADD, StockOperation.SUB) and quantity <= 0:
            raise ValidationError("Quantity must be greater than 0 for add or sub")
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative")

        try:
            product = self.repo.lock_product(product_id)
            if product is None:
                raise NotFound("Product not found")
            if not product.track_inventory:
                raise ValidationError(f"Product '{product.sku}' does not track inventory")

            if operation == StockOperation.SET:
                if variation_id is not None:
                    self.repo.lock_variation(variation_id)
                delta = quantity - self.current_stock(product_id, variation_id)
            elif operation == StockOperation.ADD:
                delta = quantity
            else:
                delta = -quantity

            movement = self.record_movement(
                product_id=product_id,
                quantity=delta,
                reason=reason,
                variation_id=variation_id,
                notes=notes,
                created_by=created_by,
            )
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Stock of product {product_id} adjusted ({operation.value} {quantity})")
        return movement
