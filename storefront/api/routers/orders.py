# storefront/api/routers/orders.py
import uuid
from typing import List

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from storefront.api.dependencies import get_lock_service
from storefront.data.database import get_db
from storefront.domain.enums import OrderPaymentStatus, OrderStatus
from storefront.domain.schemas import CancelOrderIn, CheckoutIn, OrderOut
from storefront.services.cart_service import CartService
from storefront.services.lock_service import LockService
from storefront.services.order_creation_service import OrderCreationService
from storefront.services.order_service import OrderService
from storefront.services.promotion_service import normalize_code

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(
    payload: CheckoutIn,
    idempotency_key: str | None = Header(None, max_length=255),
    lock_service: LockService = Depends(get_lock_service),
    db: Session = Depends(get_db),
):
    """
    Tworzy zamowienie z koszyka.
    Powiadomienie wysylane asynchronicznie po commicie.
    """
    carts = CartService(db)
    cart = carts.get_owned_cart(payload.cart_id, payload.customer_id, payload.session_id)
    if payload.coupon_code and normalize_code(payload.coupon_code) != cart.coupon_code and cart.items:
        carts.apply_coupon(cart, payload.coupon_code)

    svc = OrderCreationService(db, lock_service=lock_service)
    return svc.checkout(cart, payload, idempotency_key=idempotency_key)


@router.get("/", response_model=List[OrderOut])
def list_orders(
    customer_id: uuid.UUID = Query(...),
    status: OrderStatus | None = None,
    payment_status: OrderPaymentStatus | None = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.list_orders(customer_id, status, payment_status, limit, offset)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: uuid.UUID,
    customer_id: uuid.UUID | None = Query(None),
    db: Session = Depends(get_db),
):
    """Pobiera szczegoly zamowienia."""
    svc = get_service(db)
    return svc.get_order(order_id, customer_id)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(order_id: uuid.UUID, payload: CancelOrderIn, db: Session = Depends(get_db)):
    svc = get_service(db)
    order = svc.get_order(order_id, payload.customer_id)
    return svc.cancel_order(order, payload.reason, payload.actor_id or payload.customer_id)
