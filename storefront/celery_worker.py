# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    ORDER_SWEEP_INTERVAL_SECONDS,
    CART_SWEEP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski musza byc zaimportowane explicite, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "storefront.tasks.expire",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-guest-carts": {
        "task": "storefront.tasks.expire.expire_carts_task",
        "schedule": float(CART_SWEEP_INTERVAL_SECONDS),
    },
    "cancel-stale-orders": {
        "task": "storefront.tasks.expire.cancel_stale_orders_task",
        "schedule": float(ORDER_SWEEP_INTERVAL_SECONDS),
    },
}

celery_app.conf.timezone = "UTC"
