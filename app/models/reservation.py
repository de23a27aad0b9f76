from datetime import datetime, timedelta, timezone
from app.extensions import db

# How long stock stays held for an unconfirmed order
RESERVATION_HOLD = timedelta(minutes=45)


class StockReservation(db.Model):
    """Stock taken provisionally for a PENDING order.

    Deleted when the order is confirmed or cancelled. Rows that outlive
    ``expires_at`` are picked up by the expiry sweep.
    """

    __tablename__ = "stock_reservations"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id = db.Column(
        db.Integer, db.ForeignKey("variants.id"), nullable=False, index=True
    )
    qty = db.Column(db.Integer, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<StockReservation order={self.order_id} variant={self.variant_id} x{self.qty}>"
