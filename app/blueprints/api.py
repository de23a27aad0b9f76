"""JSON request parsing and error translation shared by the API blueprints."""
import logging
from flask import request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from app.extensions import db
from app.schemas import PHONE_LEN
from app.services.errors import CatalogError, OrderError

logger = logging.getLogger(__name__)


class BadBody(ValueError):
    """Request body or header the API cannot use."""


def parse_body(schema):
    """Validate the JSON body against a pydantic model."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadBody("Request body must be a JSON object")
    return schema.model_validate(payload)


def header_value(name, max_length):
    """Stripped header value; too long is a client error, never truncated."""
    value = request.headers.get(name, "").strip()
    if len(value) > max_length:
        raise BadBody(f"{name} header is too long")
    return value


def caller_phone(body_phone=None):
    """Identity forwarded by the auth gateway, else what the client sent."""
    phone = header_value("X-User-Phone", PHONE_LEN)
    return phone or (body_phone or "").strip() or None


def _error(message, status_code, **extra):
    body = {"ok": False, "message": message}
    body.update(extra)
    return body, status_code


def register_error_handlers(app):
    @app.errorhandler(OrderError)
    def handle_order_error(e):
        return _error(str(e), e.status_code)

    @app.errorhandler(CatalogError)
    def handle_catalog_error(e):
        return _error(str(e), e.status_code)

    @app.errorhandler(BadBody)
    def handle_bad_body(e):
        return _error(str(e), 400)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        # Field paths only, never the rejected values
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        return _error("Invalid request body", 400, fields=fields)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if e.code is None or e.code < 400:
            return e  # routing redirects
        return _error(e.name, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return _error("Internal server error", 500)
