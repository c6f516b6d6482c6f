# storefront/api/routers/inventory.py
import uuid
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.dependencies import require_admin
from storefront.data.database import get_db
from storefront.domain.enums import MovementType, StockReason
from storefront.domain.schemas import ProductOut, StockAdjustIn, StockMovementOut
from storefront.services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory", tags=["inventory"], dependencies=[Depends(require_admin)])


@router.post("/adjust", response_model=StockMovementOut, status_code=201)
def adjust_stock(payload: StockAdjustIn, db: Session = Depends(get_db)):
    return InventoryService(db).adjust_stock(
        product_id=payload.product_id,
        operation=payload.operation,
        quantity=payload.quantity,
        reason=payload.reason,
        variation_id=payload.variation_id,
        notes=payload.notes,
        created_by=payload.created_by,
    )


@router.get("/movements", response_model=List[StockMovementOut])
def list_movements(
    product_id: uuid.UUID | None = None,
    variation_id: uuid.UUID | None = None,
    type: MovementType | None = None,
    reason: StockReason | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return InventoryService(db).list_movements(
        product_id=product_id,
        variation_id=variation_id,
        movement_type=type.value if type else None,
        reason=reason.value if reason else None,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )


@router.get("/low-stock", response_model=List[ProductOut])
def low_stock(threshold: int | None = Query(None, ge=1), db: Session = Depends(get_db)):
    return InventoryService(db).low_stock_items(threshold)
