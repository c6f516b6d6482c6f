# storefront/domain/exceptions.py
"""
Business errors raised by the services.

Each class carries the HTTP status it is rendered with; the API layer turns
them into ``{"success": false, "message": ...}``. Messages are shown to the
client, so they must not contain internal identifiers or database text.
"""


class StorefrontError(Exception):
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StorefrontError):
    status_code = 422
    default_message = "Invalid request"


class EmptyCart(StorefrontError):
    status_code = 400
    default_message = "Cart is empty"


class NotFound(StorefrontError):
    status_code = 404
    default_message = "Resource not found"


class OutOfStock(StorefrontError):
    status_code = 409
    default_message = "Insufficient stock"


class ConcurrencyConflict(StorefrontError):
    status_code = 409
    default_message = "The resource was modified by another operation, please retry"


class DuplicateCheckout(StorefrontError):
    status_code = 409
    default_message = "A checkout with this idempotency key is already in progress"


class InvalidCoupon(StorefrontError):
    status_code = 422
    default_message = "Invalid or expired coupon code."


class PaymentRequired(StorefrontError):
    status_code = 402
    default_message = "Payment required"


class PaymentFailed(StorefrontError):
    status_code = 402
    default_message = "Payment failed"


class OrderNotCancellable(StorefrontError):
    status_code = 422
    default_message = "Order cannot be cancelled in its current state."


class RefundNotAllowed(StorefrontError):
    status_code = 422
    default_message = "Refund not allowed"


class Unauthorized(StorefrontError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(StorefrontError):
    status_code = 403
    default_message = "Access denied"


class GatewayError(StorefrontError):
    status_code = 502
    default_message = "Payment gateway unavailable, please try again later"


class ConfigurationError(StorefrontError):
    status_code = 500
    default_message = "Service configuration error"
