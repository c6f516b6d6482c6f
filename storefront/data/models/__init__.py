# import every model so they register on Base.metadata

from storefront.data.models.customer import CustomerModel
from storefront.data.models.catalogue import CategoryModel, ProductModel, ProductVariationModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.order_status_history import OrderStatusHistoryModel
from storefront.data.models.stock_movement import StockMovementModel
from storefront.data.models.promotion import PromotionModel
from storefront.data.models.promotion_usage import PromotionUsageModel
from storefront.data.models.payment import PaymentModel
from storefront.data.models.refund import RefundModel

__all__ = [
    "CustomerModel",
    "CategoryModel",
    "ProductModel",
    "ProductVariationModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderStatusHistoryModel",
    "StockMovementModel",
    "PromotionModel",
    "PromotionUsageModel",
    "PaymentModel",
    "RefundModel",
]
