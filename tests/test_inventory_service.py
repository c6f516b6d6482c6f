"""Stock ledger: counters move only through movements and never go negative."""
import pytest

from storefront.data.models import StockMovementModel
from storefront.domain.enums import StockOperation, StockReason
from storefront.domain.exceptions import NotFound, OutOfStock, ValidationError
from storefront.services.inventory_service import InventoryService


def test_restock_movement_updates_counter_and_ledger(db, make_product):
    product = make_product(stock=10)
    service = InventoryService(db)

    movement = service.record_movement(product.id, 5, StockReason.RESTOCK)
    db.commit()

    assert movement.type == "in"
    assert movement.quantity_before == 10
    assert movement.quantity_after == 15
    assert service.current_stock(product.id) == 15
    assert service.ledger_balance(product.id) == 15


def test_movement_below_zero_is_rejected(db, make_product):
    product = make_product(stock=3)
    service = InventoryService(db)

    with pytest.raises(OutOfStock):
        service.record_movement(product.id, -4, StockReason.SALE)
    db.rollback()

    assert service.current_stock(product.id) == 3
    assert db.query(StockMovementModel).count() == 1  # only the initial restock


def test_untracked_product_records_nothing(db, make_product):
    product = make_product(stock=0, track_inventory=False)
    service = InventoryService(db)

    assert service.record_movement(product.id, -100, StockReason.SALE) is None
    assert service.check_availability(product.id, 1000) is True


def test_check_availability(db, make_product):
    product = make_product(stock=2)
    service = InventoryService(db)

    assert service.check_availability(product.id, 2) is True
    assert service.check_availability(product.id, 3) is False


def test_variation_movement_moves_product_counter_too(db, make_product, make_variation):
    product = make_product(stock=0)
    variation = make_variation(product, stock=4)
    service = InventoryService(db)

    service.reserve_stock(product.id, 3, variation.id, order_id=product.id)
    db.commit()

    assert service.current_stock(product.id, variation.id) == 1
    assert service.current_stock(product.id) == 1
    assert service.ledger_balance(product.id, variation.id) == 1


def test_product_with_variations_needs_a_variation(db, make_product, make_variation):
    product = make_product(stock=0)
    make_variation(product, stock=4)

    with pytest.raises(ValidationError):
        InventoryService(db).record_movement(product.id, -1, StockReason.SALE)


def test_adjust_stock_set_add_sub(db, make_product):
    product = make_product(stock=10)
    service = InventoryService(db)

    movement = service.adjust_stock(product.id, StockOperation.SET, 4, StockReason.LOST, notes="inventory count")
    assert movement.quantity == -6
    assert movement.type == "out"

    service.adjust_stock(product.id, StockOperation.ADD, 3, StockReason.RESTOCK)
    service.adjust_stock(product.id, StockOperation.SUB, 2, StockReason.DAMAGED)

    assert service.current_stock(product.id) == 5
    assert service.ledger_balance(product.id) == 5


def test_adjust_stock_rejects_zero_add(db, make_product):
    product = make_product(stock=1)

    with pytest.raises(ValidationError):
        InventoryService(db).adjust_stock(product.id, StockOperation.ADD, 0, StockReason.RESTOCK)


def test_current_stock_of_unknown_product(db):
    import uuid

    with pytest.raises(NotFound):
        InventoryService(db).current_stock(uuid.uuid4())


def test_low_stock_items(db, make_product):
    low = make_product(stock=2)
    make_product(stock=50)

    items = InventoryService(db).low_stock_items(threshold=5)

    assert [p.id for p in items] == [low.id]
