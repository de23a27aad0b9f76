"""Tests for database models."""
import pytest
from sqlalchemy.exc import IntegrityError

from app.models.address import Address
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.reservation import StockReservation
from app.models.user import User
from app.models.variant import Variant


def test_product_creation(db):
    p = Product(
        title="Test Dress",
        slug="test-dress",
        price_mrp=1999,
        price_sale=1499,
        images=["https://cdn.example.com/a.jpg"],
    )
    db.session.add(p)
    db.session.flush()

    assert p.id is not None
    assert p.active is True
    assert p.discount_pct == 25  # round(500 * 100 / 1999)
    assert p.total_stock == 0


def test_discount_when_not_discounted(db):
    p = Product(title="Full Price", slug="full-price", price_mrp=1000, price_sale=1000)
    assert p.discount_pct == 0


def test_variant_stock_cannot_go_negative(db):
    p = Product(title="Test", slug="test", price_mrp=100, price_sale=100)
    p.variants.append(Variant(size="M", sku="T-M", stock_qty=-1))
    db.session.add(p)
    with pytest.raises(IntegrityError):
        db.session.flush()
    db.session.rollback()


def test_sku_is_unique(db):
    p = Product(title="Test", slug="test", price_mrp=100, price_sale=100)
    p.variants.append(Variant(size="S", sku="DUP", stock_qty=1))
    p.variants.append(Variant(size="M", sku="DUP", stock_qty=1))
    db.session.add(p)
    with pytest.raises(IntegrityError):
        db.session.flush()
    db.session.rollback()


def test_order_graph(db):
    p = Product(title="Test", slug="test", price_mrp=100, price_sale=90)
    v = Variant(size="M", sku="T-M", stock_qty=3)
    p.variants.append(v)
    user = User(phone="guest")
    db.session.add_all([p, user])
    db.session.flush()

    address = Address(user_id=user.id, line1="1 Main Rd", pincode="600017")
    db.session.add(address)
    db.session.flush()

    order = Order(
        user_id=user.id,
        address_id=address.id,
        subtotal=180,
        items=[OrderItem(variant_id=v.id, qty=2, price=90)],
    )
    db.session.add(order)
    db.session.flush()

    assert order.status == "PENDING"
    assert order.tbyb is False
    assert not order.is_terminal
    assert order.items[0].line_total == 180
    assert order.address.pincode == "600017"
    assert user.is_guest

    order.status = "CONFIRMED"
    assert order.is_terminal


def test_reservations_deleted_with_order(db):
    p = Product(title="Test", slug="test", price_mrp=100, price_sale=90)
    v = Variant(size="M", sku="T-M", stock_qty=3)
    p.variants.append(v)
    user = User(phone="+911234567890")
    db.session.add_all([p, user])
    db.session.flush()
    address = Address(user_id=user.id, line1="1 Main Rd", pincode="600017")
    db.session.add(address)
    db.session.flush()

    from datetime import datetime, timezone

    order = Order(user_id=user.id, address_id=address.id, subtotal=90)
    order.reservations.append(
        StockReservation(variant_id=v.id, qty=1, expires_at=datetime.now(timezone.utc))
    )
    db.session.add(order)
    db.session.commit()
    assert StockReservation.query.count() == 1

    db.session.delete(order)
    db.session.commit()
    assert StockReservation.query.count() == 0
