import logging
import re
from datetime import datetime, timezone

from app.extensions import db, transaction
from app.models.audit_log import AuditLog
from app.models.order import OrderItem
from app.models.product import Product
from app.models.variant import Variant
from app.services.errors import CatalogError

logger = logging.getLogger(__name__)

# Request field -> model column
_SCALAR_FIELDS = {
    "title": "title",
    "description": "description",
    "brand": "brand",
    "color": "color",
    "priceMrp": "price_mrp",
    "priceSale": "price_sale",
    "images": "images",
    "active": "active",
}


def slugify(title):
    """Lowercase, hyphen-separated slug from a product title."""
    slug = re.sub(r"[^a-z0-9]+", "-", (title or "").lower())[:200].strip("-")
    return slug or "product"


def unique_slug(base, exclude_id=None):
    """Return ``base`` or the first free ``base-N`` variant of it."""
    slug, n = base, 1
    while True:
        query = Product.query.filter_by(slug=slug)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if not query.first():
            return slug
        n += 1
        slug = f"{base}-{n}"


def list_products(search=None, include_inactive=False):
    """Products with variants, newest first. Inactive ones only for admin."""
    query = Product.query.options(db.selectinload(Product.variants))
    if not include_inactive:
        query = query.filter_by(active=True)
    if search:
        query = query.filter(Product.title.ilike(f"%{search.strip()}%"))
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(product_id, include_inactive=False):
    product = db.session.get(Product, product_id)
    if not product or (not product.active and not include_inactive):
        return None
    return product


def _check_sku_free(sku, exclude_id=None):
    query = Variant.query.filter_by(sku=sku)
    if exclude_id is not None:
        query = query.filter(Variant.id != exclude_id)
    if query.first():
        raise CatalogError(f"SKU already exists: {sku}")


def _check_unique_skus(variants):
    skus = [v.sku for v in variants]
    dupes = sorted({s for s in skus if skus.count(s) > 1})
    if dupes:
        raise CatalogError(f"Duplicate SKU in request: {', '.join(dupes)}")


def create_product(data, actor="admin"):
    """Create a product and its variants from a ProductCreate."""
    _check_unique_skus(data.variants)

    with transaction():
        for v in data.variants:
            _check_sku_free(v.sku)

        product = Product(
            title=data.title.strip(),
            slug=unique_slug(slugify(data.slug or data.title)),
            description=data.description,
            brand=data.brand,
            color=data.color,
            price_mrp=data.priceMrp,
            price_sale=data.priceSale,
            images=list(data.images),
            active=data.active,
            variants=[
                Variant(size=v.size, sku=v.sku, stock_qty=v.stockQty)
                for v in data.variants
            ],
        )
        db.session.add(product)
        db.session.flush()

        db.session.add(
            AuditLog(
                actor=actor,
                action="CREATE_PRODUCT",
                product_id=product.id,
                payload={"slug": product.slug, "title": product.title},
            )
        )
        product_id = product.id

    logger.info("Product %d created by %s", product_id, actor)
    return db.session.get(Product, product_id)


def _replace_variants(product, incoming):
    """Sync the variant set: update by id, create new, drop the rest.

    Variants already referenced by order lines are kept so historic orders
    stay intact.
    """
    _check_unique_skus(incoming)
    existing = {v.id: v for v in product.variants}
    keep = {v.id for v in incoming if v.id is not None}
    unknown = sorted(keep - existing.keys())
    if unknown:
        raise CatalogError(f"Unknown variant id {unknown[0]} for this product")

    # SKUs may move between this product's variants, so only clashes with
    # rows that survive the update count.
    retained = set()
    for variant_id, variant in existing.items():
        if variant_id in keep:
            continue
        in_use = OrderItem.query.filter_by(variant_id=variant_id).first()
        if in_use:
            logger.info("Keeping variant %d, referenced by orders", variant_id)
            retained.add(variant.sku)
            continue
        product.variants.remove(variant)

    wanted = {v.sku for v in incoming}
    taken = sorted(wanted & retained)
    if not taken:
        taken = sorted(
            sku
            for (sku,) in db.session.query(Variant.sku).filter(
                Variant.sku.in_(wanted), Variant.product_id != product.id
            )
        )
    if taken:
        raise CatalogError(f"SKU already exists: {taken[0]}")

    # Park renamed SKUs first so a swap never trips the unique index mid-flush
    renamed = [(existing[v.id], v) for v in incoming if v.id is not None]
    for variant, v in renamed:
        if variant.sku != v.sku:
            variant.sku = f"~{variant.id}"
    db.session.flush()

    for variant, v in renamed:
        variant.size = v.size
        variant.sku = v.sku
        variant.stock_qty = v.stockQty
    for v in incoming:
        if v.id is None:
            product.variants.append(
                Variant(size=v.size, sku=v.sku, stock_qty=v.stockQty)
            )


def update_product(product_id, data, actor="admin"):
    """Apply a ProductUpdate. Returns None when the product is missing."""
    with transaction():
        product = db.session.get(Product, product_id)
        if not product:
            return None

        fields = data.model_dump(exclude_unset=True, exclude={"variants"})
        changed = {}
        for key, value in fields.items():
            if value is None:
                continue
            column = _SCALAR_FIELDS[key]
            setattr(product, column, value.strip() if key == "title" else value)
            changed[key] = value

        if data.variants is not None:
            _replace_variants(product, data.variants)
            changed["variants"] = len(data.variants)

        product.updated_at = datetime.now(timezone.utc)
        db.session.add(
            AuditLog(
                actor=actor,
                action="UPDATE_PRODUCT",
                product_id=product.id,
                payload={"fields": sorted(changed)},
            )
        )

    logger.info("Product %d updated by %s: %s", product_id, actor, sorted(changed))
    return db.session.get(Product, product_id)


def deactivate_product(product_id, actor="admin"):
    """Soft delete: hide from the public catalog, keep rows for orders."""
    with transaction():
        product = db.session.get(Product, product_id)
        if not product:
            return None
        product.active = False
        product.updated_at = datetime.now(timezone.utc)
        db.session.add(
            AuditLog(actor=actor, action="DEACTIVATE_PRODUCT", product_id=product.id)
        )

    logger.info("Product %d deactivated by %s", product_id, actor)
    return db.session.get(Product, product_id)
