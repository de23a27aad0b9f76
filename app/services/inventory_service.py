"""Variant stock ledger.

Stock is only ever decremented through a conditional UPDATE so concurrent
orders for the same variant cannot oversell.
"""
import logging

from app.extensions import db, transaction
from app.models.audit_log import AuditLog
from app.models.product import Product
from app.models.variant import Variant
from app.services.errors import CatalogError

logger = logging.getLogger(__name__)

DEFAULT_SIZE = "Free Size"


def decrement_stock(variant_id, qty):
    """Take ``qty`` units if at least that many are on hand.

    Returns False when no row matched (unknown variant or short stock).
    """
    result = db.session.execute(
        db.update(Variant)
        .where(Variant.id == variant_id, Variant.stock_qty >= qty)
        .values(stock_qty=Variant.stock_qty - qty)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def increment_stock(variant_id, qty):
    """Return ``qty`` units to a variant. No upper bound."""
    result = db.session.execute(
        db.update(Variant)
        .where(Variant.id == variant_id)
        .values(stock_qty=Variant.stock_qty + qty)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def plan_total_stock(quantities, target):
    """Spread a new total over per-variant quantities.

    ``quantities`` must already be in stable (id-ascending) order. A surplus
    goes entirely to the first variant; a deficit is taken left to right,
    never pushing a variant below zero.

    >>> plan_total_stock([5, 5, 5], 20)
    [10, 5, 5]
    >>> plan_total_stock([5, 5, 5], 7)
    [0, 2, 5]
    """
    if target < 0:
        raise ValueError("target stock must be >= 0")
    result = list(quantities)
    if not result:
        return [target]

    delta = target - sum(result)
    if delta > 0:
        result[0] += delta
    elif delta < 0:
        deficit = -delta
        for i, qty in enumerate(result):
            if deficit == 0:
                break
            take = min(qty, deficit)
            result[i] = qty - take
            deficit -= take
    return result


def set_total_stock(product_id, target, actor="admin"):
    """Set a product's stock across all variants to exactly ``target``.

    Creates a default variant when the product has none. Returns the product,
    or None if it does not exist.
    """
    if isinstance(target, bool) or not isinstance(target, int) or target < 0:
        raise CatalogError("Stock must be a whole number >= 0")

    with transaction():
        product = db.session.get(Product, product_id)
        if not product:
            return None

        variants = (
            Variant.query.filter_by(product_id=product.id)
            .order_by(Variant.id.asc())
            .all()
        )
        before = [v.stock_qty for v in variants]

        if not variants:
            db.session.add(
                Variant(
                    product_id=product.id,
                    size=DEFAULT_SIZE,
                    sku=f"{product.slug}-DEFAULT".upper(),
                    stock_qty=target,
                )
            )
            after = [target]
        else:
            after = plan_total_stock(before, target)
            for variant, qty in zip(variants, after):
                variant.stock_qty = qty

        db.session.add(
            AuditLog(
                actor=actor,
                action="SET_STOCK",
                product_id=product.id,
                payload={"before": before, "after": after, "target": target},
            )
        )

    logger.info("Stock for product %d set to %d (%s -> %s)", product_id, target, before, after)
    db.session.refresh(product)
    return product


def adjust_stock(product_id, delta, actor="admin"):
    """Shift a product's total stock by ``delta``, never below zero."""
    product = db.session.get(Product, product_id)
    if not product:
        return None
    target = max(0, product.total_stock + int(delta))
    return set_total_stock(product_id, target, actor=actor)
