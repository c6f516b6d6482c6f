# storefront/domain/enums.py
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# statuses from which a customer may still cancel (payment not settled yet)
CANCELLABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING)


class OrderPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class RefundStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Gateway(str, Enum):
    FEDAPAY = "fedapay"


class CallbackOutcome(str, Enum):
    APPROVED = "approved"
    DECLINED = "declined"
    IGNORED = "ignored"


class PromotionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    BUY_X_GET_Y = "buy_x_get_y"


class MovementType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"

    @classmethod
    def for_delta(cls, delta: int) -> "MovementType":
        if delta > 0:
            return cls.IN
        if delta < 0:
            return cls.OUT
        return cls.ADJUSTMENT


class StockReason(str, Enum):
    ADJUSTMENT = "adjustment"
    SALE = "sale"
    RETURN = "return"
    DAMAGED = "damaged"
    RESTOCK = "restock"
    LOST = "lost"


class StockOperation(str, Enum):
    SET = "set"
    ADD = "add"
    SUB = "sub"


class RecipientKind(str, Enum):
    CUSTOMER = "customer"
    USER = "user"


class NotificationEvent(str, Enum):
    ORDER_CREATED = "order_created"
    ORDER_STATUS_CHANGED = "order_status_changed"
    ORDER_CANCELLED = "order_cancelled"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_REFUNDED = "payment_refunded"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    DATABASE = "database"
