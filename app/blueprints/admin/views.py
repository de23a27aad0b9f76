"""Admin console API: product CRUD and stock edits."""
import hmac
import logging
from flask import abort, current_app, request

from app.blueprints.admin import admin_bp
from app.blueprints.api import header_value, parse_body
from app.schemas import ProductCreate, ProductOut, ProductUpdate, StockUpdate
from app.services import inventory_service, product_service
from app.services.errors import CatalogError

logger = logging.getLogger(__name__)


@admin_bp.before_request
def require_admin_token():
    """Bearer token must match ADMIN_API_TOKEN. Unset token disables admin."""
    expected = current_app.config.get("ADMIN_API_TOKEN", "")
    header = request.headers.get("Authorization", "")
    token = header[7:].strip() if header.startswith("Bearer ") else ""
    if not expected or not hmac.compare_digest(token, expected):
        logger.warning("Rejected admin request to %s", request.path)
        abort(403)


def _actor():
    return header_value("X-Admin-User", 64) or "admin"


def _dump(product):
    return ProductOut.model_validate(product).model_dump(mode="json")


@admin_bp.route("/products", methods=["GET"])
def list_products():
    search = request.args.get("search")
    products = product_service.list_products(search=search, include_inactive=True)
    return [_dump(p) for p in products]


@admin_bp.route("/products/<int:product_id>", methods=["GET"])
def get_product(product_id):
    product = product_service.get_product(product_id, include_inactive=True)
    if not product:
        abort(404)
    return _dump(product)


@admin_bp.route("/products", methods=["POST"])
def create_product():
    data = parse_body(ProductCreate)
    product = product_service.create_product(data, actor=_actor())
    return _dump(product), 201


@admin_bp.route("/products/<int:product_id>", methods=["PATCH"])
def update_product(product_id):
    data = parse_body(ProductUpdate)
    product = product_service.update_product(product_id, data, actor=_actor())
    if not product:
        abort(404)
    return _dump(product)


@admin_bp.route("/products/<int:product_id>", methods=["DELETE"])
def delete_product(product_id):
    product = product_service.deactivate_product(product_id, actor=_actor())
    if not product:
        abort(404)
    return {"ok": True, "id": product.id, "active": product.active}


@admin_bp.route("/products/<int:product_id>/stock", methods=["PUT"])
def update_stock(product_id):
    data = parse_body(StockUpdate)
    if data.stock is not None:
        product = inventory_service.set_total_stock(product_id, data.stock, actor=_actor())
    elif data.delta is not None:
        product = inventory_service.adjust_stock(product_id, data.delta, actor=_actor())
    else:
        raise CatalogError("Send either stock or delta")
    if not product:
        abort(404)
    return _dump(product)
