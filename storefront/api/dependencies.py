# storefront/api/dependencies.py
import hmac

from fastapi import Header

from storefront.domain.exceptions import ConfigurationError, Forbidden, Unauthorized
from storefront.services.fedapay_service import FedaPayGateway
from storefront.services.lock_service import LockService
from storefront.utils import settings


def get_lock_service() -> LockService:
    return LockService()


def get_payment_gateways() -> dict:
    return {FedaPayGateway.name: FedaPayGateway()}


def require_admin(x_admin_token: str | None = Header(None)) -> None:
    """Back-office endpoints: X-Admin-Token must match ADMIN_API_TOKEN."""
    if not settings.ADMIN_API_TOKEN:
        raise ConfigurationError("Admin access is not configured")
    if not x_admin_token:
        raise Unauthorized()
    if not hmac.compare_digest(x_admin_token, settings.ADMIN_API_TOKEN):
        raise Forbidden()
