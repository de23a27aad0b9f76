"""Public catalog reads."""
from flask import abort, request

from app.blueprints.catalog import catalog_bp
from app.schemas import ProductOut
from app.services.product_service import get_product, list_products


@catalog_bp.route("/products")
def product_list():
    search = request.args.get("search")
    return [
        ProductOut.model_validate(p).model_dump(mode="json")
        for p in list_products(search=search)
    ]


@catalog_bp.route("/products/<int:product_id>")
def product_detail(product_id):
    product = get_product(product_id)
    if not product:
        abort(404)
    return ProductOut.model_validate(product).model_dump(mode="json")
