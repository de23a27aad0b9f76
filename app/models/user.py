from datetime import datetime, timezone
from app.extensions import db

GUEST_PHONE = "guest"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    phone = db.Column(db.String(32), unique=True, nullable=False, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    addresses = db.relationship("Address", backref="user", lazy="dynamic")

    @property
    def is_guest(self):
        return self.phone == GUEST_PHONE

    def __repr__(self):
        return f"<User {self.phone}>"
