# storefront/services/payment_service.py
import uuid
from typing import Any

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.payment import PaymentModel
from storefront.data.models.refund import RefundModel
from storefront.domain.enums import (
    CallbackOutcome,
    NotificationEvent,
    OrderPaymentStatus,
    OrderStatus,
    PaymentStatus,
    RefundStatus,
)
from storefront.domain.exceptions import (
    ConfigurationError,
    GatewayError,
    NotFound,
    PaymentRequired,
    RefundNotAllowed,
    ValidationError,
)
from storefront.domain.schemas import PaymentSession
from storefront.repos.payment_repo import PaymentRepo
from storefront.services.fedapay_service import FedaPayGateway
from storefront.services.notification_service import NotificationService
from storefront.services.order_service import OrderService
from storefront.utils.dates import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentService:
    """
    Payment initiation and settlement.

    Settlement (mark_as_successful / mark_as_failed) is its own transaction,
    separate from order creation; it never touches stock or coupons. Both
    transitions are conditional updates, so a webhook delivered twice changes
    state once. Only one payment ever settles an order.
    """

    def __init__(
        self,
        db: Session,
        gateways: dict[str, Any] | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.repo = PaymentRepo(db)
        self.notification_service = notification_service or NotificationService()
        self.orders = OrderService(db, self.notification_service)
        self.gateways = gateways if gateways is not None else {FedaPayGateway.name: FedaPayGateway()}

    def _gateway(self, name: str):
        gateway = self.gateways.get(name)
        if gateway is None:
            raise ValidationError(f"Unsupported payment gateway: {name}")
        return gateway

    def get_payment(self, payment_id: uuid.UUID) -> PaymentModel:
        payment = self.repo.get_payment(payment_id)
        if payment is None:
            raise NotFound("Payment not found")
        return payment

    # =====================================================
    # INITIATION
    # =====================================================
    def initialize_payment(self, order: OrderModel, gateway: str) -> PaymentSession:
        adapter = self._gateway(gateway)

        if order.is_paid():
            raise ValidationError("This order has already been paid")
        if order.status in (OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value):
            raise ValidationError("This order can no longer be paid")
        if order.total <= 0:
            raise PaymentRequired("Nothing to pay for this order")

        # the pending row is committed before any network call
        payment = self.repo.create_payment(
            PaymentModel(
                order_id=order.id,
                gateway=gateway,
                status=PaymentStatus.PENDING.value,
                amount=order.total,
                currency=order.currency,
                payment_method=order.payment_method,
            )
        )
        self.repo.commit()

        try:
            session = adapter.create_transaction(payment, order)
        except (GatewayError, ConfigurationError) as e:
            payment.status = PaymentStatus.FAILED.value
            payment.extra = {**(payment.extra or {}), "failure_reason": e.message}
            self.repo.commit()
            raise

        payment.gateway_reference = session.reference
        self.repo.commit()

        logger.info(f"Payment {payment.id} initialised on {gateway} for order {order.order_number}")
        return PaymentSession(
            payment_id=payment.id,
            payment_url=session.payment_url,
            token=session.token,
            reference=session.reference,
        )

    # =====================================================
    # SETTLEMENT
    # =====================================================
    def handle_callback(self, gateway: str, payload: dict[str, Any]) -> PaymentModel:
        adapter = self._gateway(gateway)
        event = adapter.parse_callback(payload)

        payment = None
        if event.payment_id is not None:
            payment = self.repo.get_payment(event.payment_id)
        if payment is None and event.transaction_id:
            payment = self.repo.find_by_external_id(gateway, event.transaction_id)
        if payment is None:
            raise NotFound("Payment not found for gateway callback")

        if event.outcome == CallbackOutcome.APPROVED:
            return self.mark_as_successful(payment, event.transaction_id or payment.gateway_reference, payload)

        if event.outcome == CallbackOutcome.DECLINED:
            return self.mark_as_failed(payment, event.status or "declined", payload)

        logger.warning(
            f"Ignoring {gateway} callback {event.event_id} with status {event.status!r} "
            f"for payment {payment.id}"
        )
        return payment

    def mark_as_successful(
        self,
        payment: PaymentModel,
        transaction_id: str,
        raw_response: dict[str, Any] | None,
    ) -> PaymentModel:
        try:
            rowcount = self.repo.mark_completed(payment.id, transaction_id, raw_response, utcnow())
            if rowcount == 0:
                # retry of a callback we already applied
                self.repo.rollback()
                logger.info(f"Payment {payment.id} already settled, callback ignored")
                return self.repo.refresh(payment)

            self.repo.refresh(payment)
            # serialises settlements of the same order against each other and cancel_order
            order = self.orders.repo.lock_order(payment.order_id)

            refund_reason = self._unpayable_reason(order)
            if refund_reason is not None:
                # money was captured anyway, the order itself is left alone
                payment.extra = {**(payment.extra or {}), "refund_required": True, "refund_reason": refund_reason}
                self.repo.commit()
                logger.error(
                    f"Payment {payment.id} ({transaction_id}) captured for order {order.order_number} "
                    f"which {refund_reason}, flagged for refund"
                )
                return payment

            self.orders.update_payment_status(order, OrderPaymentStatus.PAID, commit=False)
            if order.status == OrderStatus.PENDING.value:
                self.orders.update_status(order, OrderStatus.PROCESSING, "Payment received", commit=False)

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Payment {payment.id} completed ({transaction_id}) for order {order.order_number}")
        self.notification_service.order_event(
            order, NotificationEvent.PAYMENT_SUCCEEDED, amount=payment.amount
        )
        return payment

    @staticmethod
    def _unpayable_reason(order: OrderModel) -> str | None:
        if order.is_paid():
            return "was already paid by another payment"
        if order.status in (OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value):
            return f"is {order.status}"
        return None

    def mark_as_failed(
        self,
        payment: PaymentModel,
        reason: str,
        raw_response: dict[str, Any] | None,
    ) -> PaymentModel:
        """The order keeps its status, only its payment_status follows."""
        try:
            extra = {**(payment.extra or {}), "failure_reason": reason}
            if self.repo.mark_failed(payment.id, raw_response, extra) == 0:
                self.repo.rollback()
                logger.info(f"Payment {payment.id} is {payment.status}, failure callback ignored")
                return self.repo.refresh(payment)

            self.repo.refresh(payment)
            order = payment.order
            if not order.is_paid():
                self.orders.update_payment_status(order, OrderPaymentStatus.FAILED, commit=False)

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.warning(f"Payment {payment.id} failed for order {order.order_number}: {reason}")
        self.notification_service.order_event(order, NotificationEvent.PAYMENT_FAILED, reason=reason)
        return payment

    # =====================================================
    # REFUNDS
    # =====================================================
    def refund(
        self,
        payment: PaymentModel,
        amount: int | None = None,
        reason: str | None = None,
        created_by: uuid.UUID | None = None,
    ) -> RefundModel:
        """
        Records a refund against a completed payment. Completed refunds never
        add up to more than the payment; a full refund moves the payment and its
        order to refunded.
        """
        try:
            payment = self.repo.lock_payment(payment.id)
            if payment.status != PaymentStatus.COMPLETED.value:
                raise RefundNotAllowed("Only completed payments can be refunded")

            remaining = payment.amount - payment.refunded_amount()
            amount = remaining if amount is None else amount
            if amount <= 0:
                raise RefundNotAllowed("Nothing left to refund on this payment")
            if amount > remaining:
                raise RefundNotAllowed(f"Refund exceeds the refundable amount of {remaining}")

            refund = self.repo.add_refund(
                RefundModel(
                    payment_id=payment.id,
                    amount=amount,
                    reason=reason,
                    status=RefundStatus.COMPLETED.value,
                    created_by=created_by,
                )
            )

            order = payment.order
            if amount == remaining:
                payment.status = PaymentStatus.REFUNDED.value
                self.orders.update_payment_status(order, OrderPaymentStatus.REFUNDED, commit=False)
                self.orders.update_status(
                    order, OrderStatus.REFUNDED, reason or "Payment refunded", created_by, commit=False
                )

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Refund of {amount} recorded on payment {payment.id}")
        self.notification_service.order_event(
            order, NotificationEvent.PAYMENT_REFUNDED, amount=amount
        )
        return refund
