# storefront/repos/payment_repo.py
import uuid
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.payment import PaymentModel
from storefront.data.models.refund import RefundModel
from storefront.domain.enums import PaymentStatus


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_payment(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.flush()
        return payment

    def get_payment(self, payment_id: uuid.UUID) -> PaymentModel | None:
        return self.db.get(PaymentModel, payment_id)

    def lock_payment(self, payment_id: uuid.UUID) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel)
            .where(PaymentModel.id == payment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def find_by_external_id(self, gateway: str, external_id: str) -> PaymentModel | None:
        # the gateway id is stored as gateway_reference at initialisation
        # and copied to transaction_id once the payment settles
        return self.db.execute(
            select(PaymentModel)
            .where(
                PaymentModel.gateway == gateway,
                or_(
                    PaymentModel.transaction_id == external_id,
                    PaymentModel.gateway_reference == external_id,
                ),
            )
            .order_by(PaymentModel.created_at.desc())
        ).scalars().first()

    def mark_completed(
        self,
        payment_id: uuid.UUID,
        transaction_id: str,
        gateway_response: dict | None,
        paid_at: datetime,
    ) -> int:
        """
        Conditional update, only one caller can move a payment to completed.
        Returns the number of affected rows.
        """
        result = self.db.execute(
            update(PaymentModel)
            .where(
                PaymentModel.id == payment_id,
                PaymentModel.status.not_in(
                    [PaymentStatus.COMPLETED.value, PaymentStatus.REFUNDED.value]
                ),
            )
            .values(
                status=PaymentStatus.COMPLETED.value,
                transaction_id=transaction_id,
                gateway_response=gateway_response,
                paid_at=paid_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def mark_failed(
        self,
        payment_id: uuid.UUID,
        gateway_response: dict | None,
        extra: dict | None,
    ) -> int:
        result = self.db.execute(
            update(PaymentModel)
            .where(
                PaymentModel.id == payment_id,
                PaymentModel.status.in_(
                    [PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value]
                ),
            )
            .values(
                status=PaymentStatus.FAILED.value,
                gateway_response=gateway_response,
                extra=extra,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_refund(self, refund: RefundModel) -> RefundModel:
        self.db.add(refund)
        self.db.flush()
        return refund

    def refresh(self, payment: PaymentModel) -> PaymentModel:
        self.db.refresh(payment)
        return payment

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
