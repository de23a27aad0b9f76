from datetime import datetime, timezone
from app.extensions import db


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    address_id = db.Column(
        db.Integer, db.ForeignKey("addresses.id"), nullable=False
    )
    subtotal = db.Column(db.Integer, nullable=False)
    tbyb = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(
        db.String(20), nullable=False, default="PENDING", index=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User")
    address = db.relationship("Address")
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    reservations = db.relationship(
        "StockReservation",
        backref="order",
        lazy="select",
        cascade="all, delete-orphan",
    )

    VALID_STATUSES = {"PENDING", "CONFIRMED", "CANCELLED"}

    # PENDING is the only state with outgoing edges
    TRANSITIONS = {
        "PENDING": {"CONFIRMED", "CANCELLED"},
        "CONFIRMED": set(),
        "CANCELLED": set(),
    }

    @classmethod
    def can_transition(cls, current, target):
        return target in cls.TRANSITIONS.get(current, set())

    @property
    def is_terminal(self):
        return not self.TRANSITIONS.get(self.status)

    def __repr__(self):
        return f"<Order {self.id} [{self.status}] {self.subtotal}>"


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = db.Column(
        db.Integer, db.ForeignKey("variants.id"), nullable=False
    )
    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)  # sale price at order time

    variant = db.relationship("Variant")

    @property
    def line_total(self):
        return self.price * self.qty

    def __repr__(self):
        return f"<OrderItem variant={self.variant_id} x{self.qty} @ {self.price}>"
