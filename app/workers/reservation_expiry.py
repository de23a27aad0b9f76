"""RQ jobs that release stock held by abandoned PENDING orders."""
import logging
from app import create_app
from flask import current_app, has_app_context
from redis.exceptions import LockError
from app import extensions
from app.services import order_service

logger = logging.getLogger(__name__)

_worker_app = None


def _get_app():
    """Return an app instance for worker execution.

    Reuse the current app when already inside an app context (tests/CLI),
    otherwise lazily create the worker app once.
    """
    global _worker_app
    if has_app_context():
        return current_app._get_current_object()
    if _worker_app is None:
        _worker_app = create_app()
    return _worker_app


def _lock(name, timeout=300):
    """Redis lock, or None when running without Redis."""
    if extensions.redis_client is None:
        return None
    return extensions.redis_client.lock(name, timeout=timeout)


def expire_order_job(order_id):
    """Delayed job enqueued at order creation, runs once the hold lapses.

    Idempotency: a confirmed or cancelled order is skipped.
    Distributed lock: one worker per order at a time.
    """
    app = _get_app()
    with app.app_context():
        lock = _lock(f"expire_order:{order_id}")
        if lock is not None and not lock.acquire(blocking=False):
            logger.info("Lock held for order %d, skipping", order_id)
            return False
        try:
            return order_service.expire_order(order_id)
        finally:
            if lock is not None:
                try:
                    lock.release()
                except LockError:
                    logger.warning("Expiry lock for order %d already released", order_id)


def sweep_expired_reservations():
    """Expire every stale PENDING order. Safe to run from cron."""
    app = _get_app()
    with app.app_context():
        lock = _lock("expire_orders:sweep", timeout=600)
        if lock is not None and not lock.acquire(blocking=False):
            logger.info("Sweep already running, skipping")
            return []
        try:
            return order_service.expire_stale_orders()
        finally:
            if lock is not None:
                try:
                    lock.release()
                except LockError:
                    logger.warning("Sweep lock already released")
