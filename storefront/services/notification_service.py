# storefront/services/notification_service.py
from typing import Any, Iterable

from kombu.exceptions import OperationalError

from storefront.celery_worker import celery_app
from storefront.data.models.order import OrderModel
from storefront.domain.enums import NotificationChannel, NotificationEvent, RecipientKind
from storefront.domain.schemas import Recipient
from storefront.utils.logging import get_logger
from storefront.utils.settings import NOTIFICATION_MAX_RETRIES, NOTIFICATION_RETRY_BACKOFF

logger = get_logger(__name__)


def order_recipient(order: OrderModel) -> Recipient:
    """The buyer of an order; guests are reached through the e-mail they checked out with."""
    return Recipient(
        kind=RecipientKind.CUSTOMER,
        id=order.customer_id,
        address=order.customer_email,
    )


def order_payload(order: OrderModel, **extra: Any) -> dict[str, Any]:
    payload = {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "payment_status": order.payment_status,
        "total": order.total,
        "currency": order.currency,
    }
    payload.update(extra)
    return payload


class NotificationService:
    """
    Serwis do wysylania powiadomien.
    Uzywa Celery do asynchronicznego przetwarzania, notify() wraca od razu.
    """

    def notify(
        self,
        recipient: Recipient,
        event: NotificationEvent,
        payload: dict[str, Any],
        channels: Iterable[NotificationChannel] = (NotificationChannel.EMAIL,),
    ) -> None:
        for channel in channels:
            try:
                send_notification_task.delay(
                    recipient.model_dump(mode="json"),
                    NotificationEvent(event).value,
                    NotificationChannel(channel).value,
                    payload,
                )
            except OperationalError as e:
                # broker down: the business operation already committed, only log
                logger.error(f"Could not enqueue {event} notification on {channel}: {e}")

    def order_event(self, order: OrderModel, event: NotificationEvent, **extra: Any) -> None:
        self.notify(order_recipient(order), event, order_payload(order, **extra))


@celery_app.task(
    name="storefront.services.notification_service.send_notification_task",
    autoretry_for=(ConnectionError, TimeoutError),
    max_retries=NOTIFICATION_MAX_RETRIES,
    default_retry_delay=NOTIFICATION_RETRY_BACKOFF,
    acks_late=True,
)
def send_notification_task(recipient: dict, event: str, channel: str, payload: dict):
    """
    Celery task - w prawdziwym systemie wyslalby email/SMS/push.
    Teraz tylko loguje.
    """
    if channel != NotificationChannel.DATABASE.value and not recipient.get("address"):
        logger.warning(f"[NOTIFICATION] {event} for {recipient.get('kind')} {recipient.get('id')} has no address, skipped")
        return {"event": event, "channel": channel, "status": "skipped"}

    logger.info(
        f"[NOTIFICATION] {channel} -> {recipient.get('kind')}:{recipient.get('id') or recipient.get('address')}: "
        f"{event} {payload.get('order_number', '')}"
    )

    return {"event": event, "channel": channel, "status": "sent"}
