# storefront/repos/order_repo.py
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_status_history import OrderStatusHistoryModel
from storefront.domain.enums import CANCELLABLE_STATUSES, OrderPaymentStatus, OrderStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: uuid.UUID) -> OrderModel | None:
        order = self.db.get(OrderModel, order_id)
        # soft-deleted orders are invisible to the workflow
        if order is None or order.deleted_at is not None:
            return None
        return order

    def lock_order(self, order_id: uuid.UUID) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_by_checkout_token(self, token: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.checkout_token == token)
        ).scalar_one_or_none()

    def list_orders(
        self,
        customer_id: uuid.UUID | None = None,
        status: str | None = None,
        payment_status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[OrderModel]:
        query = select(OrderModel).where(OrderModel.deleted_at.is_(None))
        if customer_id is not None:
            query = query.where(OrderModel.customer_id == customer_id)
        if status:
            query = query.where(OrderModel.status == status)
        if payment_status:
            query = query.where(OrderModel.payment_status == payment_status)

        query = query.order_by(OrderModel.created_at.desc()).limit(limit).offset(offset)
        return list(self.db.execute(query).scalars().all())

    def stale_pending_orders(self, created_before: datetime) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel).where(
                    OrderModel.deleted_at.is_(None),
                    OrderModel.status == OrderStatus.PENDING.value,
                    OrderModel.payment_status != OrderPaymentStatus.PAID.value,
                    OrderModel.created_at < created_before,
                )
            ).scalars().all()
        )

    def mark_cancelled_if_cancellable(self, order_id: uuid.UUID) -> int:
        """
        UPDATE orders SET status = 'cancelled'
        WHERE id = :id AND status IN ('pending', 'processing') AND payment_status <> 'paid'

        Returns the number of affected rows; 0 means the order was paid or moved on
        in the meantime.
        """
        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.status.in_([s.value for s in CANCELLABLE_STATUSES]),
                OrderModel.payment_status != OrderPaymentStatus.PAID.value,
            )
            .values(status=OrderStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_history(
        self,
        order_id: uuid.UUID,
        status: str,
        note: str | None = None,
        created_by: uuid.UUID | None = None,
    ) -> OrderStatusHistoryModel:
        history = OrderStatusHistoryModel(
            order_id=order_id,
            status=status,
            note=note,
            created_by=created_by,
        )
        self.db.add(history)
        self.db.flush()
        return history

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
