"""Order endpoints used by the mobile app and the admin console."""
from flask import abort, current_app

from app.blueprints.api import caller_phone, parse_body
from app.blueprints.orders import orders_bp
from app.schemas import CreateOrderRequest, OrderOut
from app.services import order_service


def _dump(order):
    return OrderOut.model_validate(order).model_dump(mode="json")


@orders_bp.route("/orders", methods=["GET"])
def list_orders():
    return [_dump(o) for o in order_service.list_orders()]


@orders_bp.route("/orders/<int:order_id>", methods=["GET"])
def get_order(order_id):
    order = order_service.get_order(order_id)
    if not order:
        abort(404)
    return _dump(order)


@orders_bp.route("/orders", methods=["POST"])
def create_order():
    body = parse_body(CreateOrderRequest)
    body.userPhone = caller_phone(body.userPhone)
    result = order_service.create_order(body, current_app.extensions["admission"])
    return result, 201


@orders_bp.route("/orders/<int:order_id>/confirm", methods=["PATCH"])
def confirm_order(order_id):
    result = order_service.confirm_order(order_id, actor=caller_phone() or "api")
    if result is None:
        abort(404)
    return result


@orders_bp.route("/orders/<int:order_id>/cancel", methods=["PATCH"])
def cancel_order(order_id):
    result = order_service.cancel_order(order_id, actor=caller_phone() or "api")
    if result is None:
        abort(404)
    return result
