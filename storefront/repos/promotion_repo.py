# storefront/repos/promotion_repo.py
import uuid

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.promotion import PromotionModel
from storefront.data.models.promotion_usage import PromotionUsageModel


class PromotionRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_promotion(self, promotion_id: uuid.UUID) -> PromotionModel | None:
        return self.db.get(PromotionModel, promotion_id)

    def get_by_code(self, code: str) -> PromotionModel | None:
        return self.db.execute(
            select(PromotionModel).where(PromotionModel.code == code)
        ).scalar_one_or_none()

    def create_promotion(self, promotion: PromotionModel) -> PromotionModel:
        self.db.add(promotion)
        self.db.flush()
        return promotion

    def count_customer_usages(self, promotion_id: uuid.UUID, customer_id: uuid.UUID) -> int:
        return self.db.execute(
            select(func.count(PromotionUsageModel.id)).where(
                PromotionUsageModel.promotion_id == promotion_id,
                PromotionUsageModel.customer_id == customer_id,
            )
        ).scalar_one()

    def add_usage(self, usage: PromotionUsageModel) -> PromotionUsageModel:
        self.db.add(usage)
        self.db.flush()
        return usage

    def increment_usage(self, promotion_id: uuid.UUID) -> int:
        """
        UPDATE promotions SET usage_count = usage_count + 1
        WHERE id = :id AND (usage_limit IS NULL OR usage_count < usage_limit)
        """
        result = self.db.execute(
            update(PromotionModel)
            .where(
                PromotionModel.id == promotion_id,
                or_(
                    PromotionModel.usage_limit.is_(None),
                    PromotionModel.usage_count < PromotionModel.usage_limit,
                ),
            )
            .values(usage_count=PromotionModel.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
