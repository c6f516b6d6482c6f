# storefront/services/order_service.py
import uuid
from datetime import timedelta

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.enums import NotificationEvent, OrderPaymentStatus, OrderStatus
from storefront.domain.exceptions import Forbidden, NotFound, OrderNotCancellable
from storefront.repos.order_repo import OrderRepo
from storefront.services.inventory_service import InventoryService
from storefront.services.notification_service import NotificationService
from storefront.utils.dates import utcnow
from storefront.utils.logging import get_logger
from storefront.utils.settings import ORDER_AUTO_CANCEL_HOURS

logger = get_logger(__name__)


class OrderService:
    """
    Serwis odpowiedzialny za cykl zycia zamowienia po jego utworzeniu.

    pending -> processing -> confirmed -> shipped -> delivered, plus cancelled
    and refunded. update_status does not police transitions, cancel_order does.
    Either way an order reaching cancelled gives its reserved stock back.

    Methods taking ``commit`` are also used as steps of the payment workflow,
    where the payment service owns the transaction and passes ``commit=False``.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.inventory = InventoryService(db)
        self.notification_service = notification_service or NotificationService()

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: uuid.UUID, customer_id: uuid.UUID | None = None) -> OrderModel:
        order = self.repo.get_order(order_id)

        if order is None:
            raise NotFound("Order not found")

        if customer_id is not None and order.customer_id != customer_id:
            raise Forbidden("Access to this order is denied")

        return order

    def list_orders(
        self,
        customer_id: uuid.UUID | None = None,
        status: OrderStatus | None = None,
        payment_status: OrderPaymentStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[OrderModel]:
        return self.repo.list_orders(
            customer_id=customer_id,
            status=status.value if status else None,
            payment_status=payment_status.value if payment_status else None,
            limit=limit,
            offset=offset,
        )

    # =====================================================
    # COMMANDS
    # =====================================================
    def update_status(
        self,
        order: OrderModel,
        new_status: OrderStatus,
        note: str | None = None,
        actor_id: uuid.UUID | None = None,
        commit: bool = True,
    ) -> OrderModel:
        new_status = OrderStatus(new_status)
        if order.status == new_status.value:
            return order

        old_status = order.status
        try:
            order.status = new_status.value
            self.repo.add_history(order.id, new_status.value, note, actor_id)
            if new_status == OrderStatus.CANCELLED:
                # a cancelled order never keeps its reservation
                self.inventory.release_order_stock(order, created_by=actor_id)
            if commit:
                self.repo.commit()
        except Exception:
            if commit:
                self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number}: {old_status} -> {new_status.value}")

        if commit:
            self.notification_service.order_event(
                order, NotificationEvent.ORDER_STATUS_CHANGED, previous_status=old_status
            )
        return order

    def update_payment_status(
        self,
        order: OrderModel,
        payment_status: OrderPaymentStatus,
        commit: bool = True,
    ) -> OrderModel:
        order.payment_status = OrderPaymentStatus(payment_status).value
        if commit:
            self.repo.commit()
        else:
            self.db.flush()
        return order

    def cancel_order(
        self,
        order: OrderModel,
        reason: str | None = None,
        actor_id: uuid.UUID | None = None,
    ) -> OrderModel:
        """
        Only pending/processing orders whose payment has not settled can be
        cancelled. The stock reserved at checkout goes back in the same
        transaction as the status change.
        """
        if not order.can_be_cancelled():
            raise OrderNotCancellable()

        try:
            # guarded UPDATE, a payment settling concurrently wins
            if self.repo.mark_cancelled_if_cancellable(order.id) == 0:
                raise OrderNotCancellable()
            self.db.refresh(order)

            self.repo.add_history(
                order.id,
                OrderStatus.CANCELLED.value,
                reason or "Order cancelled by user",
                actor_id,
            )
            self.inventory.release_order_stock(order, created_by=actor_id)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.order_number} cancelled: {reason or 'no reason given'}")
        self.notification_service.order_event(order, NotificationEvent.ORDER_CANCELLED, reason=reason)
        return order

    def cancel_stale_pending_orders(self, hours: int | None = None) -> int:
        """Cancels unpaid orders older than ``hours``, which also frees their stock."""
        hours = ORDER_AUTO_CANCEL_HOURS if hours is None else hours
        cutoff = utcnow() - timedelta(hours=hours)

        cancelled = 0
        for order in self.repo.stale_pending_orders(cutoff):
            try:
                self.cancel_order(order, reason=f"Automatically cancelled: unpaid after {hours}h")
                cancelled += 1
            except OrderNotCancellable:
                logger.info(f"Order {order.order_number} was settled meanwhile, not cancelled")

        if cancelled:
            logger.info(f"Cancelled {cancelled} stale pending order(s)")
        return cancelled
