# storefront/tasks/expire.py
from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.cart_repo import CartRepo
from storefront.services.order_service import OrderService
from storefront.utils.dates import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.expire.expire_carts_task")
def expire_carts_task():
    """Deletes anonymous carts past their expires_at; customer carts never expire."""
    logger.info("Expire carts task started")

    db = SessionLocal()
    try:
        repo = CartRepo(db)
        deleted = repo.delete_expired_guest_carts(utcnow())
        repo.commit()
        logger.info(f"Deleted {deleted} expired guest cart(s)")
        return deleted
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@celery_app.task(name="storefront.tasks.expire.cancel_stale_orders_task")
def cancel_stale_orders_task(hours: int | None = None):
    """Cancels orders left unpaid too long, their reserved stock goes back on the shelf."""
    logger.info("Cancel stale orders task started")

    db = SessionLocal()
    try:
        return OrderService(db).cancel_stale_pending_orders(hours)
    finally:
        db.close()
