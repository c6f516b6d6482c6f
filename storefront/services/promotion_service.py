# storefront/services/promotion_service.py
import uuid

from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.promotion import PromotionModel
from storefront.data.models.promotion_usage import PromotionUsageModel
from storefront.domain.enums import PromotionType
from storefront.domain.exceptions import InvalidCoupon, NotFound, ValidationError
from storefront.domain.schemas import PromotionCreate
from storefront.repos.promotion_repo import PromotionRepo
from storefront.utils.dates import as_utc, utcnow
from storefront.utils.logging import get_logger
from storefront.utils.money import percent_of, round_half_up

logger = get_logger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


class PromotionService:
    """
    Coupon validation and discount calculation.

    validate() runs its checks in a fixed order and the first failing one
    decides the message the customer sees.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = PromotionRepo(db)

    def validate(self, code: str, cart: CartModel) -> PromotionModel:
        promotion = self.repo.get_by_code(normalize_code(code))

        if promotion is None or not self.is_active(promotion):
            raise InvalidCoupon("Invalid or expired coupon code.")

        if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
            raise InvalidCoupon("This coupon has reached its usage limit.")

        if cart.customer_id is not None and promotion.usage_limit_per_customer is not None:
            used = self.repo.count_customer_usages(promotion.id, cart.customer_id)
            if used >= promotion.usage_limit_per_customer:
                raise InvalidCoupon(
                    "You have already used this coupon the maximum number of times."
                )

        if promotion.min_purchase_amount is not None and cart.subtotal < promotion.min_purchase_amount:
            raise InvalidCoupon(
                f"Minimum purchase amount of {promotion.min_purchase_amount} required."
            )

        if promotion.has_allowlist() and not any(
            self.is_item_eligible(promotion, item) for item in cart.items
        ):
            raise InvalidCoupon("This coupon is not applicable to the items in your cart.")

        return promotion

    def is_active(self, promotion: PromotionModel) -> bool:
        if not promotion.is_active:
            return False

        now = utcnow()
        starts_at = as_utc(promotion.starts_at)
        expires_at = as_utc(promotion.expires_at)

        if starts_at is not None and starts_at > now:
            return False
        if expires_at is not None and expires_at <= now:
            return False
        return True

    def is_item_eligible(self, promotion: PromotionModel, item: CartItemModel) -> bool:
        products = {str(p) for p in (promotion.applicable_products or [])}
        categories = {str(c) for c in (promotion.applicable_categories or [])}

        if str(item.product_id) in products:
            return True

        if categories and item.product is not None:
            return any(str(category.id) in categories for category in item.product.categories)

        return False

    def eligible_amount(self, promotion: PromotionModel, cart: CartModel) -> int:
        if not promotion.has_allowlist():
            return cart.subtotal
        return sum(item.subtotal for item in cart.items if self.is_item_eligible(promotion, item))

    def calculate_discount(self, promotion: PromotionModel, eligible_amount: int) -> int:
        """
        percentage: round-half-up of amount * value / 100
        fixed_amount: value
        buy_x_get_y: 0, not computed automatically

        The result never exceeds max_discount_amount nor the amount it discounts.
        """
        if eligible_amount <= 0:
            return 0

        promotion_type = PromotionType(promotion.type)
        if promotion_type == PromotionType.PERCENTAGE:
            discount = percent_of(eligible_amount, promotion.value)
        elif promotion_type == PromotionType.FIXED_AMOUNT:
            discount = round_half_up(promotion.value)
        elif promotion_type == PromotionType.BUY_X_GET_Y:
            return 0
        else:
            raise ValueError(f"Unknown promotion type {promotion_type}")

        if promotion.max_discount_amount is not None:
            discount = min(discount, promotion.max_discount_amount)

        return max(0, min(discount, eligible_amount))

    def record_usage(
        self,
        promotion: PromotionModel,
        order_id: uuid.UUID,
        customer_id: uuid.UUID | None,
        discount_amount: int,
    ) -> PromotionUsageModel:
        """Runs inside the caller's transaction, does not commit."""
        usage = self.repo.add_usage(
            PromotionUsageModel(
                promotion_id=promotion.id,
                customer_id=customer_id,
                order_id=order_id,
                discount_amount=discount_amount,
            )
        )

        # atomic increment guarded by the limit, two checkouts racing for the
        # last redemption cannot both pass
        if self.repo.increment_usage(promotion.id) == 0:
            raise InvalidCoupon("This coupon has reached its usage limit.")
        self.db.refresh(promotion, attribute_names=["usage_count"])

        logger.info(
            f"Promotion {promotion.code} used by order {order_id} "
            f"(discount {discount_amount}, usage {promotion.usage_count})"
        )
        return usage

    # =====================================================
    # ADMIN
    # =====================================================
    def create_promotion(self, data: PromotionCreate) -> PromotionModel:
        code = normalize_code(data.code)
        if self.repo.get_by_code(code) is not None:
            raise ValidationError(f"Promotion code {code} already exists")

        promotion = PromotionModel(
            name=data.name,
            code=code,
            description=data.description,
            type=data.type.value,
            value=data.value,
            min_purchase_amount=data.min_purchase_amount,
            max_discount_amount=data.max_discount_amount,
            usage_limit=data.usage_limit,
            usage_limit_per_customer=data.usage_limit_per_customer,
            usage_count=0,
            is_active=data.is_active,
            starts_at=data.starts_at,
            expires_at=data.expires_at,
            applicable_products=[str(p) for p in data.applicable_products or []] or None,
            applicable_categories=[str(c) for c in data.applicable_categories or []] or None,
        )
        self.repo.create_promotion(promotion)
        self.repo.commit()

        logger.info(f"Promotion {code} created ({promotion.type}, value {promotion.value})")
        return promotion

    def get_promotion(self, promotion_id: uuid.UUID) -> PromotionModel:
        promotion = self.repo.get_promotion(promotion_id)
        if promotion is None:
            raise NotFound("Promotion not found")
        return promotion
