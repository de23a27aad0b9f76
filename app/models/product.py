from datetime import datetime, timezone
from app.extensions import db


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, default="")
    brand = db.Column(db.String(100), default="")
    color = db.Column(db.String(50), default="")
    price_mrp = db.Column(db.Integer, nullable=False)
    price_sale = db.Column(db.Integer, nullable=False)
    images = db.Column(db.JSON, default=list)  # ["https://..."]
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    variants = db.relationship(
        "Variant",
        back_populates="product",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="Variant.id",
    )

    @property
    def total_stock(self):
        return sum(v.stock_qty for v in self.variants)

    @property
    def discount_pct(self):
        """Whole-percent discount of sale price against MRP."""
        if not self.price_mrp or self.price_sale >= self.price_mrp:
            return 0
        return round((self.price_mrp - self.price_sale) * 100 / self.price_mrp)

    def __repr__(self):
        return f"<Product {self.slug}: {self.title}>"
