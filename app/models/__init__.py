from app.models.product import Product
from app.models.variant import Variant
from app.models.user import User
from app.models.address import Address
from app.models.order import Order, OrderItem
from app.models.reservation import StockReservation
from app.models.audit_log import AuditLog

__all__ = [
    "Product",
    "Variant",
    "User",
    "Address",
    "Order",
    "OrderItem",
    "StockReservation",
    "AuditLog",
]
