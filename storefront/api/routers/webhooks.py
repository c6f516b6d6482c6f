# storefront/api/routers/webhooks.py
import json

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool

from storefront.api.dependencies import get_payment_gateways
from storefront.data.database import SessionLocal
from storefront.domain.exceptions import ConfigurationError, Forbidden
from storefront.services.payment_service import PaymentService
from storefront.utils import settings
from storefront.utils.logging import get_logger
from storefront.utils.security import redact, verify_signature

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def process_fedapay_event(payload: dict, gateways: dict) -> None:
    db = SessionLocal()
    try:
        PaymentService(db, gateways=gateways).handle_callback("fedapay", payload)
    finally:
        db.close()


@router.post("/fedapay")
async def fedapay_webhook(
    request: Request,
    x_fedapay_signature: str | None = Header(None),
    gateways: dict = Depends(get_payment_gateways),
):
    """
    FedaPay callback. Authenticity is checked on the raw body; once it passes
    the gateway always gets a 200 so it stops retrying, processing errors are
    only logged.
    """
    secret = settings.FEDAPAY_WEBHOOK_SECRET
    if not secret:
        logger.error("FEDAPAY_WEBHOOK_SECRET is not set, rejecting webhook")
        raise ConfigurationError("Webhook configuration error")

    body = await request.body()
    if not x_fedapay_signature:
        logger.warning("FedaPay webhook without signature")
        raise Forbidden("Invalid signature")
    if not verify_signature(body, x_fedapay_signature, secret):
        logger.warning("FedaPay webhook with invalid signature")
        raise Forbidden("Invalid signature")

    try:
        payload = json.loads(body)
    except ValueError:
        logger.error("FedaPay webhook body is not valid JSON")
        return {"status": "success"}
    if not isinstance(payload, dict):
        logger.error("FedaPay webhook body is not a JSON object")
        return {"status": "success"}

    logger.info(f"FedaPay webhook received: {redact(payload)}")

    try:
        await run_in_threadpool(process_fedapay_event, payload, gateways)
    except Exception:
        logger.exception(f"FedaPay webhook {payload.get('id')} processing failed")

    return {"status": "success"}
