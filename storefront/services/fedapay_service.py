# storefront/services/fedapay_service.py
import uuid
from typing import Any

import requests
from requests import RequestException

from storefront.data.models.order import OrderModel
from storefront.data.models.payment import PaymentModel
from storefront.domain.enums import CallbackOutcome, Gateway
from storefront.domain.exceptions import ConfigurationError, GatewayError
from storefront.domain.schemas import CallbackEvent, GatewaySession
from storefront.utils.logging import get_logger
from storefront.utils.retry import http_retry
from storefront.utils.settings import (
    FEDAPAY_CALLBACK_URL,
    FEDAPAY_ENVIRONMENT,
    FEDAPAY_SECRET_KEY,
    FEDAPAY_TIMEOUT,
)

logger = get_logger(__name__)

API_URLS = {
    "sandbox": "https://sandbox-api.fedapay.com/v1",
    "live": "https://api.fedapay.com/v1",
}

# FedaPay transaction status -> what we do with the payment
STATUS_OUTCOMES = {
    "approved": CallbackOutcome.APPROVED,
    "declined": CallbackOutcome.DECLINED,
    "canceled": CallbackOutcome.DECLINED,
}


class FedaPayClient:
    """Thin wrapper over the FedaPay REST API (transactions and checkout tokens)."""

    def __init__(
        self,
        secret_key: str | None = None,
        environment: str | None = None,
        timeout: int | None = None,
        session: requests.Session | None = None,
    ):
        self.secret_key = secret_key or FEDAPAY_SECRET_KEY
        environment = environment or FEDAPAY_ENVIRONMENT
        self.base_url = API_URLS.get(environment, API_URLS["sandbox"])
        self.timeout = timeout or FEDAPAY_TIMEOUT
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        if not self.secret_key:
            raise ConfigurationError("Payment gateway is not configured")
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @http_retry()
    def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(f"FedaPayClient {method} {url}")

        resp = self.session.request(method, url, json=json, headers=self._headers(), timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def create_transaction(self, payload: dict) -> dict:
        data = self._request("POST", "/transactions", json=payload)
        return data.get("v1/transaction", data)

    def create_token(self, transaction_id: str) -> dict:
        return self._request("POST", f"/transactions/{transaction_id}/token")


class FedaPayGateway:
    """
    Payment gateway adapter for FedaPay.

    create_transaction opens a hosted checkout for a payment, parse_callback turns
    a webhook body into a CallbackEvent the payment service can act on.
    """

    name = Gateway.FEDAPAY.value

    def __init__(self, client: FedaPayClient | None = None, callback_url: str | None = None):
        self.client = client or FedaPayClient()
        self.callback_url = callback_url or FEDAPAY_CALLBACK_URL

    def create_transaction(self, payment: PaymentModel, order: OrderModel) -> GatewaySession:
        address = order.shipping_address or {}
        payload = {
            "description": f"Order #{order.order_number}",
            "amount": payment.amount,
            "currency": {"iso": payment.currency},
            "callback_url": self.callback_url,
            "customer": {
                "firstname": address.get("first_name") or "Guest",
                "lastname": address.get("last_name") or "User",
                "email": order.customer_email,
                "phone_number": {
                    "number": order.customer_phone,
                    "country": (address.get("country") or "bj").lower(),
                },
            },
            # our correlation id, echoed back in every webhook
            "custom_metadata": {
                "payment_id": str(payment.id),
                "order_id": str(order.id),
            },
        }

        try:
            transaction = self.client.create_transaction(payload)
            token = self.client.create_token(str(transaction["id"]))
        except (RequestException, KeyError, ValueError) as e:
            logger.error(f"FedaPay transaction for order {order.order_number} failed: {e}")
            raise GatewayError() from e

        return GatewaySession(
            payment_url=token.get("url", ""),
            token=token.get("token", ""),
            reference=str(transaction["id"]),
        )

    def parse_callback(self, payload: dict[str, Any]) -> CallbackEvent:
        entity = payload.get("entity") or {}
        status = entity.get("status")
        if not status:
            # "transaction.approved" -> "approved"
            event_type = payload.get("type") or ""
            status = event_type.split(".", 1)[1] if event_type.startswith("transaction.") else None

        metadata = entity.get("custom_metadata") or {}
        payment_id = None
        if metadata.get("payment_id"):
            try:
                payment_id = uuid.UUID(str(metadata["payment_id"]))
            except ValueError:
                logger.warning(f"FedaPay event {payload.get('id')} carries a malformed payment_id")

        transaction_id = entity.get("id")
        return CallbackEvent(
            event_id=str(payload["id"]) if payload.get("id") is not None else None,
            payment_id=payment_id,
            transaction_id=str(transaction_id) if transaction_id is not None else None,
            status=status,
            outcome=STATUS_OUTCOMES.get(status, CallbackOutcome.IGNORED),
        )
