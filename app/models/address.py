from datetime import datetime, timezone
from app.extensions import db


class Address(db.Model):
    """Delivery address snapshot. Written once per order, never edited."""

    __tablename__ = "addresses"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(255), default="")
    phone = db.Column(db.String(32), default="")
    line1 = db.Column(db.String(255), nullable=False)
    line2 = db.Column(db.String(255), default="")
    landmark = db.Column(db.String(255), default="")
    pincode = db.Column(db.String(6), nullable=False)
    lat = db.Column(db.Float)
    lng = db.Column(db.Float)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<Address {self.line1}, {self.pincode}>"
