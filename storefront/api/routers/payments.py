# storefront/api/routers/payments.py
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.dependencies import get_payment_gateways
from storefront.data.database import get_db
from storefront.domain.schemas import PaymentInitIn, PaymentOut, PaymentSession
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(db: Session, gateways: dict):
    return PaymentService(db, gateways=gateways)


@router.post("/initialize", response_model=PaymentSession, status_code=201)
def initialize_payment(
    payload: PaymentInitIn,
    gateways: dict = Depends(get_payment_gateways),
    db: Session = Depends(get_db),
):
    order = OrderService(db).get_order(payload.order_id, payload.customer_id)
    return get_service(db, gateways).initialize_payment(order, payload.gateway)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(
    payment_id: uuid.UUID,
    gateways: dict = Depends(get_payment_gateways),
    db: Session = Depends(get_db),
):
    return get_service(db, gateways).get_payment(payment_id)
