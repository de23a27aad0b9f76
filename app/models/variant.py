from app.extensions import db


class Variant(db.Model):
    __tablename__ = "variants"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    size = db.Column(db.String(50), nullable=False)  # "S", "M", "Free Size"
    sku = db.Column(db.String(100), unique=True, nullable=False)
    stock_qty = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", back_populates="variants")

    __table_args__ = (
        db.CheckConstraint("stock_qty >= 0", name="ck_variant_stock_non_negative"),
    )

    def __repr__(self):
        return f"<Variant {self.sku}: {self.stock_qty}>"
