"""Tests for reservation expiry (service sweep and RQ jobs)."""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from app.models.order import Order
from app.models.reservation import RESERVATION_HOLD, StockReservation
from app.services import order_service

T0 = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


def place(make_product, open_admission, order_request, stocks=(5,), qty=2, now=T0):
    product = make_product(stocks=stocks)
    vid = product.variants[0].id
    result = order_service.create_order(order_request([(vid, qty)]), open_admission, now=now)
    return result["orderId"], vid


def test_expire_order_before_hold_is_noop(db, make_product, open_admission, order_request, stock_of):
    order_id, vid = place(make_product, open_admission, order_request)

    assert order_service.expire_order(order_id, now=T0 + timedelta(minutes=44)) is False
    assert db.session.get(Order, order_id).status == "PENDING"
    assert stock_of(vid) == 3


def test_expire_order_after_hold_restores_stock(db, make_product, open_admission, order_request, stock_of):
    order_id, vid = place(make_product, open_admission, order_request)

    assert order_service.expire_order(order_id, now=T0 + RESERVATION_HOLD + timedelta(seconds=1))
    assert db.session.get(Order, order_id).status == "CANCELLED"
    assert StockReservation.query.filter_by(order_id=order_id).count() == 0
    assert stock_of(vid) == 5


def test_expire_skips_confirmed_order(db, make_product, open_admission, order_request, stock_of):
    order_id, vid = place(make_product, open_admission, order_request)
    order_service.confirm_order(order_id)

    assert order_service.expire_order(order_id, now=T0 + timedelta(hours=2)) is False
    assert db.session.get(Order, order_id).status == "CONFIRMED"
    assert stock_of(vid) == 3


def test_sweep_expires_only_stale_pending_orders(db, make_product, open_admission, order_request, stock_of):
    stale, stale_vid = place(make_product, open_admission, order_request, now=T0)
    fresh, fresh_vid = place(make_product, open_admission, order_request, now=T0 + timedelta(minutes=30))
    confirmed, confirmed_vid = place(make_product, open_admission, order_request, now=T0)
    order_service.confirm_order(confirmed)

    expired = order_service.expire_stale_orders(now=T0 + timedelta(minutes=50))

    assert expired == [stale]
    assert db.session.get(Order, stale).status == "CANCELLED"
    assert db.session.get(Order, fresh).status == "PENDING"
    assert db.session.get(Order, confirmed).status == "CONFIRMED"
    assert (stock_of(stale_vid), stock_of(fresh_vid), stock_of(confirmed_vid)) == (5, 3, 3)

    # Running again finds nothing left to do
    assert order_service.expire_stale_orders(now=T0 + timedelta(minutes=50)) == []


def test_order_creation_schedules_expiry_job(db, make_product, open_admission, order_request):
    queue = MagicMock()
    with patch("app.extensions.task_queue", queue):
        order_id, _ = place(make_product, open_admission, order_request)

    queue.enqueue_in.assert_called_once_with(
        RESERVATION_HOLD, "app.workers.reservation_expiry.expire_order_job", order_id
    )


def test_queue_failure_does_not_fail_order(db, make_product, open_admission, order_request):
    queue = MagicMock()
    queue.enqueue_in.side_effect = ConnectionError("redis down")
    with patch("app.extensions.task_queue", queue):
        order_id, _ = place(make_product, open_admission, order_request)

    assert db.session.get(Order, order_id).status == "PENDING"


def test_expire_order_job_runs_in_app_context(app, db, make_product, open_admission, order_request, stock_of):
    order_id, vid = place(
        make_product, open_admission, order_request, now=datetime.now(timezone.utc) - timedelta(hours=1)
    )

    from app.workers.reservation_expiry import expire_order_job

    assert expire_order_job(order_id) is True
    assert stock_of(vid) == 5
    # Idempotency: second delivery of the same job does nothing
    assert expire_order_job(order_id) is False
    assert stock_of(vid) == 5


def test_expire_order_job_skips_when_locked(app, db, make_product, open_admission, order_request, stock_of):
    order_id, vid = place(
        make_product, open_admission, order_request, now=datetime.now(timezone.utc) - timedelta(hours=1)
    )
    redis = MagicMock()
    redis.lock.return_value.acquire.return_value = False

    from app.workers.reservation_expiry import expire_order_job

    with patch("app.extensions.redis_client", redis):
        assert expire_order_job(order_id) is False

    redis.lock.assert_called_once_with(f"expire_order:{order_id}", timeout=300)
    assert db.session.get(Order, order_id).status == "PENDING"
    assert stock_of(vid) == 3


def test_sweep_job_releases_lock(app, db, make_product, open_admission, order_request):
    order_id, _ = place(
        make_product, open_admission, order_request, now=datetime.now(timezone.utc) - timedelta(hours=1)
    )
    redis = MagicMock()
    redis.lock.return_value.acquire.return_value = True

    from app.workers.reservation_expiry import sweep_expired_reservations

    with patch("app.extensions.redis_client", redis):
        assert sweep_expired_reservations() == [order_id]

    redis.lock.return_value.release.assert_called_once()


def test_sweep_cli(app, db, make_product, open_admission, order_request):
    order_id, _ = place(
        make_product, open_admission, order_request, now=datetime.now(timezone.utc) - timedelta(hours=1)
    )

    result = app.test_cli_runner().invoke(args=["sweep-reservations"])

    assert result.exit_code == 0
    assert "Expired 1 order(s)." in result.output
    assert f"order {order_id}" in result.output
