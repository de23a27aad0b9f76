"""Order creation and the PENDING -> CONFIRMED/CANCELLED lifecycle.

Every write path runs inside a single ``transaction()``: stock decrements,
the order rows and the reservations either all land or none do.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.dialects import postgresql, sqlite

from app import extensions
from app.extensions import db, transaction
from app.models.address import Address
from app.models.audit_log import AuditLog
from app.models.order import Order, OrderItem
from app.models.reservation import RESERVATION_HOLD, StockReservation
from app.models.user import GUEST_PHONE, User
from app.models.variant import Variant
from app.services import inventory_service
from app.services.admission import has_coords, is_pincode
from app.services.errors import InvalidTransition, OrderError

logger = logging.getLogger(__name__)

EXPIRY_JOB = "app.workers.reservation_expiry.expire_order_job"

# Orders.subtotal is a 32-bit column
MAX_SUBTOTAL = 2**31 - 1

_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def _utcnow():
    return datetime.now(timezone.utc)


def list_orders():
    return (
        Order.query.options(db.selectinload(Order.items))
        .order_by(Order.id.desc())
        .all()
    )


def get_order(order_id):
    return db.session.get(Order, order_id)


def _upsert_user(phone):
    """Insert-or-ignore on the unique phone, then read the row back.

    Two first orders for the same phone can race here; the loser's insert
    becomes a no-op instead of a unique violation.
    """
    insert = _INSERTS[db.session.get_bind().dialect.name]
    db.session.execute(
        insert(User)
        .values(phone=phone, created_at=_utcnow())
        .on_conflict_do_nothing(index_elements=["phone"])
    )
    return User.query.filter_by(phone=phone).one()


def create_order(request, admission, now=None):
    """Validate, reserve stock and persist a PENDING order.

    ``request`` is a CreateOrderRequest; ``admission`` an AdmissionPolicy.
    Raises OrderError with a customer-facing message on any rejection.
    """
    if not request.items:
        raise OrderError("No items")
    if request.address is None:
        raise OrderError("Address required")

    address_in = request.address
    pincode = (address_in.pincode or "").strip()
    coords = has_coords(address_in.lat, address_in.lng)
    # Optional alongside coordinates, but stored, so it must be well formed
    if coords and pincode and not is_pincode(pincode):
        raise OrderError("Invalid pincode")

    admission.check(request.address)

    now = now or _utcnow()
    phone = (request.userPhone or "").strip() or GUEST_PHONE

    with transaction():
        ids = [item.variantId for item in request.items]
        variants = (
            Variant.query.options(db.joinedload(Variant.product))
            .filter(Variant.id.in_(ids))
            .all()
        )
        by_id = {v.id: v for v in variants}

        subtotal = 0
        lines = []
        for item in request.items:
            variant = by_id.get(item.variantId)
            if variant is None:
                raise OrderError("Invalid variant in cart")
            price = variant.product.price_sale
            subtotal += price * item.qty
            lines.append((item.variantId, item.qty, price))
        if subtotal > MAX_SUBTOTAL:
            raise OrderError("Order total too large")

        # Client order, no reordering. One short line aborts everything.
        for variant_id, qty, _price in lines:
            if not inventory_service.decrement_stock(variant_id, qty):
                logger.info(
                    "Insufficient stock for variant %d (wanted %d)", variant_id, qty
                )
                raise OrderError("Insufficient stock for one or more items")

        user = _upsert_user(phone)

        address = Address(
            user_id=user.id,
            name=address_in.name,
            phone=address_in.phone,
            line1=address_in.line1,
            line2=address_in.line2,
            landmark=address_in.landmark or "",
            pincode=pincode,
            lat=address_in.lat if coords else None,
            lng=address_in.lng if coords else None,
        )
        db.session.add(address)
        db.session.flush()

        order = Order(
            user_id=user.id,
            address_id=address.id,
            subtotal=subtotal,
            tbyb=bool(request.tbyb),
            status="PENDING",
            items=[
                OrderItem(variant_id=vid, qty=qty, price=price)
                for vid, qty, price in lines
            ],
        )
        db.session.add(order)
        db.session.flush()

        expires_at = now + RESERVATION_HOLD
        for vid, qty, _price in lines:
            db.session.add(
                StockReservation(
                    order_id=order.id,
                    variant_id=vid,
                    qty=qty,
                    expires_at=expires_at,
                )
            )
        order_id = order.id

    logger.info(
        "Order %d created for %s: %d line(s), subtotal %d", order_id, phone, len(lines), subtotal
    )
    _schedule_expiry(order_id)
    return {"ok": True, "orderId": order_id, "subtotal": subtotal, "status": "PENDING"}


def _schedule_expiry(order_id):
    queue = extensions.task_queue
    if queue is None:
        return
    try:
        queue.enqueue_in(RESERVATION_HOLD, EXPIRY_JOB, order_id)
    except Exception:
        # The periodic sweep still catches this order
        logger.exception("Could not schedule reservation expiry for order %d", order_id)


def _apply_transition(order, target, restore_stock, actor, action, now):
    """Move ``order`` out of PENDING and resolve its reservations.

    Must run inside an open transaction.
    """
    if not Order.can_transition(order.status, target):
        raise InvalidTransition(f"Order is already {order.status}")

    # Guarded flip, so a concurrent confirm/cancel cannot both win
    result = db.session.execute(
        db.update(Order)
        .where(Order.id == order.id, Order.status == "PENDING")
        .values(status=target, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidTransition("Order is no longer pending")

    reservations = StockReservation.query.filter_by(order_id=order.id).all()
    restored = []
    if restore_stock:
        for reservation in reservations:
            inventory_service.increment_stock(reservation.variant_id, reservation.qty)
            restored.append({"variantId": reservation.variant_id, "qty": reservation.qty})

    StockReservation.query.filter_by(order_id=order.id).delete(
        synchronize_session=False
    )

    db.session.add(
        AuditLog(
            actor=actor,
            action=action,
            order_id=order.id,
            payload={"restored": restored} if restore_stock else None,
        )
    )
    return restored


def confirm_order(order_id, actor="api"):
    """PENDING -> CONFIRMED. Stock stays taken; reservations are dropped."""
    with transaction():
        order = db.session.get(Order, order_id)
        if not order:
            return None
        _apply_transition(order, "CONFIRMED", False, actor, "CONFIRM_ORDER", _utcnow())

    logger.info("Order %d confirmed", order_id)
    return {"ok": True, "orderId": order_id, "status": "CONFIRMED"}


def cancel_order(order_id, actor="api"):
    """PENDING -> CANCELLED, returning every reserved unit to stock."""
    with transaction():
        order = db.session.get(Order, order_id)
        if not order:
            return None
        restored = _apply_transition(
            order, "CANCELLED", True, actor, "CANCEL_ORDER", _utcnow()
        )

    logger.info("Order %d cancelled, restored %s", order_id, restored)
    return {"ok": True, "orderId": order_id, "status": "CANCELLED"}


def expire_order(order_id, now=None):
    """Cancel a PENDING order whose hold has lapsed.

    Returns True if the order was expired. Orders that were confirmed or
    cancelled in the meantime are left alone.
    """
    now = now or _utcnow()
    try:
        with transaction():
            order = db.session.get(Order, order_id)
            if not order or order.status != "PENDING":
                return False
            lapsed = (
                db.session.query(StockReservation.id)
                .filter(
                    StockReservation.order_id == order_id,
                    StockReservation.expires_at <= now,
                )
                .first()
            )
            if lapsed is None:
                return False
            restored = _apply_transition(
                order, "CANCELLED", True, "system", "EXPIRE_ORDER", now
            )
    except InvalidTransition:
        logger.info("Order %d changed state before it could expire", order_id)
        return False

    logger.info("Order %d expired, restored %s", order_id, restored)
    return True


def expire_stale_orders(now=None):
    """Expire every PENDING order holding a lapsed reservation."""
    now = now or _utcnow()
    rows = (
        db.session.query(StockReservation.order_id)
        .join(Order, Order.id == StockReservation.order_id)
        .filter(Order.status == "PENDING", StockReservation.expires_at <= now)
        .distinct()
        .order_by(StockReservation.order_id)
        .all()
    )
    db.session.commit()  # close the read before per-order transactions

    expired = [order_id for (order_id,) in rows if expire_order(order_id, now=now)]
    if expired:
        logger.info("Expired %d stale order(s): %s", len(expired), expired)
    return expired


def get_stats():
    """Order counts by status for the stats command."""
    rows = (
        db.session.query(Order.status, db.func.count(Order.id))
        .group_by(Order.status)
        .all()
    )
    return dict(rows)
