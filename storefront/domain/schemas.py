# storefront/domain/schemas.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from storefront.domain.enums import (
    CallbackOutcome,
    OrderStatus,
    PromotionType,
    RecipientKind,
    StockOperation,
    StockReason,
)
from storefront.utils.settings import PAYMENT_DEFAULT_GATEWAY


class ErrorOut(BaseModel):
    """Every error the API returns has this shape."""

    success: bool = False
    message: str


# =====================================================
# CUSTOMERS
# =====================================================
class CustomerCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=50)


class CustomerOut(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str | None = None
    phone: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# CATALOGUE / INVENTORY
# =====================================================
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryOut(BaseModel):
    id: uuid.UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class VariationCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100)
    variation_name: str = Field(..., min_length=1, max_length=255)
    price: int | None = Field(None, ge=0, description="None -> product price")
    stock_quantity: int = Field(0, ge=0, description="Initial stock, recorded as a restock movement")


class VariationOut(BaseModel):
    id: uuid.UUID
    sku: str
    variation_name: str
    price: int | None = None
    stock_quantity: int

    model_config = ConfigDict(from_attributes=True)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    sku: str = Field(..., min_length=1, max_length=100)
    price: int = Field(..., ge=0)
    track_inventory: bool = True
    stock_quantity: int = Field(0, ge=0, description="Initial stock, recorded as a restock movement")
    low_stock_threshold: int | None = Field(None, ge=0)
    category_ids: List[uuid.UUID] = Field(default_factory=list)


class ProductOut(BaseModel):
    id: uuid.UUID
    name: str
    sku: str
    price: int
    track_inventory: bool
    stock_quantity: int
    low_stock_threshold: int | None = None
    categories: List[CategoryOut] = []
    variations: List[VariationOut] = []

    model_config = ConfigDict(from_attributes=True)


class StockAdjustIn(BaseModel):
    product_id: uuid.UUID
    variation_id: uuid.UUID | None = None
    operation: StockOperation
    quantity: int = Field(..., ge=0)
    reason: StockReason
    notes: str | None = Field(None, max_length=1000)
    created_by: uuid.UUID | None = None


class StockMovementOut(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    variation_id: uuid.UUID | None = None
    type: str
    reason: str
    quantity: int
    quantity_before: int
    quantity_after: int
    reference_id: uuid.UUID | None = None
    reference_type: str | None = None
    notes: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# CARTS
# =====================================================
class CartOwnerIn(BaseModel):
    """A cart belongs to a customer or to an anonymous session, never both."""

    customer_id: uuid.UUID | None = None
    session_id: str | None = Field(None, min_length=1, max_length=255)

    @model_validator(mode="after")
    def check_single_owner(self):
        if (self.customer_id is None) == (self.session_id is None):
            raise ValueError("Provide exactly one of customer_id or session_id")
        return self


class CartMergeIn(BaseModel):
    """Guest cart to fold into the customer cart after login."""

    guest_cart_id: uuid.UUID
    session_id: str = Field(..., min_length=1, max_length=255)


class CartItemIn(BaseModel):
    product_id: uuid.UUID
    variation_id: uuid.UUID | None = None
    quantity: int = Field(..., gt=0, description="Ilosc produktu (> 0)")
    options: dict[str, Any] | None = None


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., description="0 or less removes the line")


class CouponIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)


class CartItemOut(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    variation_id: uuid.UUID | None = None
    quantity: int
    price: int
    subtotal: int
    options: dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID | None = None
    session_id: str | None = None
    items: List[CartItemOut]
    coupon_code: str | None = None
    subtotal: int
    discount_amount: int
    tax_amount: int
    shipping_amount: int
    total: int
    expires_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# ORDERS
# =====================================================
class AddressIn(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: str | None = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    country: str = Field(..., min_length=2, max_length=2)
    phone: str | None = Field(None, max_length=50)


class CheckoutIn(BaseModel):
    """Checkout form: turns the owner's cart into an order."""

    cart_id: uuid.UUID
    customer_id: uuid.UUID | None = None
    session_id: str | None = None

    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=1, max_length=50)
    shipping_address: AddressIn
    billing_address: AddressIn | None = None  # None -> shipping address
    payment_method: str = Field(..., min_length=1, max_length=50)
    coupon_code: str | None = Field(None, min_length=1, max_length=50)  # None -> coupon already on the cart
    customer_note: str | None = Field(None, max_length=1000)
    metadata: dict[str, Any] | None = None


class OrderItemOut(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    variation_id: uuid.UUID | None = None
    product_name: str
    product_sku: str
    variation_name: str | None = None
    quantity: int
    price: int
    subtotal: int
    discount_amount: int
    total: int

    model_config = ConfigDict(from_attributes=True)


class StatusHistoryOut(BaseModel):
    status: str
    note: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: uuid.UUID
    order_number: str
    customer_id: uuid.UUID | None = None
    status: str
    payment_status: str
    payment_method: str | None = None
    customer_email: str
    customer_phone: str
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any]
    subtotal: int
    discount_amount: int
    tax_amount: int
    shipping_amount: int
    total: int
    currency: str
    coupon_code: str | None = None
    customer_note: str | None = None
    items: List[OrderItemOut] = []
    status_histories: List[StatusHistoryOut] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    note: str | None = Field(None, max_length=1000)
    actor_id: uuid.UUID | None = None


class CancelOrderIn(BaseModel):
    customer_id: uuid.UUID | None = None
    reason: str | None = Field(None, max_length=500)
    actor_id: uuid.UUID | None = None


# =====================================================
# PROMOTIONS
# =====================================================
class PromotionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=50)
    description: str | None = None
    type: PromotionType = PromotionType.PERCENTAGE
    value: Decimal = Field(..., ge=0)
    min_purchase_amount: int | None = Field(None, ge=0)
    max_discount_amount: int | None = Field(None, ge=0)
    usage_limit: int | None = Field(None, ge=0)
    usage_limit_per_customer: int | None = Field(None, ge=0)
    is_active: bool = True
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    applicable_products: List[uuid.UUID] | None = None
    applicable_categories: List[uuid.UUID] | None = None

    @model_validator(mode="after")
    def check_window(self):
        if self.type == PromotionType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage promotions cannot exceed 100")
        if self.starts_at and self.expires_at and self.expires_at <= self.starts_at:
            raise ValueError("expires_at must be after starts_at")
        return self


class PromotionOut(BaseModel):
    id: uuid.UUID
    name: str
    code: str
    type: str
    value: Decimal
    min_purchase_amount: int | None = None
    max_discount_amount: int | None = None
    usage_limit: int | None = None
    usage_limit_per_customer: int | None = None
    usage_count: int
    is_active: bool
    starts_at: datetime | None = None
    expires_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# PAYMENTS
# =====================================================
class PaymentInitIn(BaseModel):
    order_id: uuid.UUID
    customer_id: uuid.UUID | None = None
    gateway: str = PAYMENT_DEFAULT_GATEWAY


class PaymentSession(BaseModel):
    """What the client needs to redirect the buyer to the gateway."""

    payment_id: uuid.UUID
    payment_url: str
    token: str
    reference: str


class GatewaySession(BaseModel):
    payment_url: str
    token: str
    reference: str


class CallbackEvent(BaseModel):
    """A gateway webhook reduced to what the payment service acts on."""

    event_id: str | None = None
    payment_id: uuid.UUID | None = None
    transaction_id: str | None = None
    status: str | None = None
    outcome: CallbackOutcome


class RefundIn(BaseModel):
    amount: int | None = Field(None, gt=0, description="None -> refund the remaining amount")
    reason: str = Field(..., min_length=1, max_length=500)
    created_by: uuid.UUID | None = None


class RefundOut(BaseModel):
    id: uuid.UUID
    amount: int
    reason: str | None = None
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentOut(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    gateway: str
    gateway_reference: str | None = None
    transaction_id: str | None = None
    status: str
    amount: int
    currency: str
    paid_at: datetime | None = None
    refunds: List[RefundOut] = []

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# NOTIFICATIONS
# =====================================================
class Recipient(BaseModel):
    """Tagged reference to whoever is notified: a customer or a back-office user."""

    kind: RecipientKind
    id: uuid.UUID | None = None
    address: str | None = None
