# storefront/api/routers/carts.py
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import (
    CartItemIn,
    CartItemUpdate,
    CartMergeIn,
    CartOut,
    CartOwnerIn,
    CouponIn,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(db: Session):
    return CartService(db)


@router.post("/", response_model=CartOut)
def create_cart(payload: CartOwnerIn, db: Session = Depends(get_db)):
    """Zwraca koszyk wlasciciela, tworzy go przy pierwszym uzyciu."""
    svc = get_service(db)
    return svc.get_or_create_cart(payload.customer_id, payload.session_id)


@router.get("/{cart_id}", response_model=CartOut)
def get_cart(
    cart_id: uuid.UUID,
    customer_id: uuid.UUID | None = Query(None),
    session_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return svc.get_owned_cart(cart_id, customer_id, session_id)


@router.post("/{cart_id}/items", response_model=CartOut)
def add_item(
    cart_id: uuid.UUID,
    payload: CartItemIn,
    customer_id: uuid.UUID | None = Query(None),
    session_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = svc.get_owned_cart(cart_id, customer_id, session_id)
    return svc.add_item(
        cart,
        product_id=payload.product_id,
        quantity=payload.quantity,
        variation_id=payload.variation_id,
        options=payload.options,
    )


@router.patch("/{cart_id}/items/{item_id}", response_model=CartOut)
def update_item(
    cart_id: uuid.UUID,
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    customer_id: uuid.UUID | None = Query(None),
    session_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = svc.get_owned_cart(cart_id, customer_id, session_id)
    return svc.update_item(cart, item_id, payload.quantity)


@router.delete("/{cart_id}/items/{item_id}", response_model=CartOut)
def remove_item(
    cart_id: uuid.UUID,
    item_id: uuid.UUID,
    customer_id: uuid.UUID | None = Query(None),
    session_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = svc.get_owned_cart(cart_id, customer_id, session_id)
    return svc.remove_item(cart, item_id)


@router.post("/{cart_id}/coupon", response_model=CartOut)
def apply_coupon(
    cart_id: uuid.UUID,
    payload: CouponIn,
    customer_id: uuid.UUID | None = Query(None),
    session_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = svc.get_owned_cart(cart_id, customer_id, session_id)
    return svc.apply_coupon(cart, payload.code)


@router.delete("/{cart_id}/coupon", response_model=CartOut)
def remove_coupon(
    cart_id: uuid.UUID,
    customer_id: uuid.UUID | None = Query(None),
    session_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    cart = svc.get_owned_cart(cart_id, customer_id, session_id)
    return svc.remove_coupon(cart)


@router.post("/{cart_id}/merge", response_model=CartOut)
def merge_cart(
    cart_id: uuid.UUID,
    payload: CartMergeIn,
    customer_id: uuid.UUID = Query(...),
    db: Session = Depends(get_db),
):
    """Po zalogowaniu: pozycje koszyka goscia trafiaja do koszyka klienta."""
    svc = get_service(db)
    customer_cart = svc.get_owned_cart(cart_id, customer_id=customer_id)
    guest_cart = svc.get_owned_cart(payload.guest_cart_id, session_id=payload.session_id)
    return svc.merge_carts(guest_cart, customer_cart)
