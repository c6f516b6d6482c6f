# storefront/api/routers/admin.py
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.dependencies import get_payment_gateways, require_admin
from storefront.data.database import get_db
from storefront.domain.schemas import (
    OrderOut,
    OrderStatusUpdate,
    PromotionCreate,
    PromotionOut,
    RefundIn,
    RefundOut,
)
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService
from storefront.services.promotion_service import PromotionService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.patch("/orders/{order_id}/status", response_model=OrderOut)
def update_order_status(order_id: uuid.UUID, payload: OrderStatusUpdate, db: Session = Depends(get_db)):
    svc = OrderService(db)
    order = svc.get_order(order_id)
    return svc.update_status(order, payload.status, payload.note, payload.actor_id)


@router.post("/promotions", response_model=PromotionOut, status_code=201)
def create_promotion(payload: PromotionCreate, db: Session = Depends(get_db)):
    return PromotionService(db).create_promotion(payload)


@router.get("/promotions/{promotion_id}", response_model=PromotionOut)
def get_promotion(promotion_id: uuid.UUID, db: Session = Depends(get_db)):
    return PromotionService(db).get_promotion(promotion_id)


@router.post("/payments/{payment_id}/refund", response_model=RefundOut, status_code=201)
def refund_payment(
    payment_id: uuid.UUID,
    payload: RefundIn,
    gateways: dict = Depends(get_payment_gateways),
    db: Session = Depends(get_db),
):
    svc = PaymentService(db, gateways=gateways)
    payment = svc.get_payment(payment_id)
    return svc.refund(payment, payload.amount, payload.reason, payload.created_by)
