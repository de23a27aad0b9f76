"""Flask CLI commands for admin operations."""
import click


DEMO_PRODUCTS = [
    {
        "title": "Floral Summer Dress",
        "description": "Lightweight cotton floral dress for casual outings.",
        "color": "Floral",
        "mrp": 1999,
        "sale": 1499,
        "variants": [("S", "FLORAL-S", 5), ("M", "FLORAL-M", 5), ("L", "FLORAL-L", 5)],
    },
    {
        "title": "Black Cocktail Dress",
        "description": "Elegant black dress perfect for evening wear.",
        "color": "Black",
        "mrp": 2999,
        "sale": 2599,
        "variants": [("S", "BLACK-S", 3), ("M", "BLACK-M", 4), ("L", "BLACK-L", 2)],
    },
    {
        "title": "Casual Shirt Dress",
        "description": "Everyday casual shirt dress with a relaxed fit.",
        "color": "Blue",
        "mrp": 1799,
        "sale": 1299,
        "variants": [("S", "SHIRT-S", 6), ("M", "SHIRT-M", 6), ("L", "SHIRT-L", 6)],
    },
]


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        from app.extensions import db

        db.create_all()
        click.echo("Database initialized.")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Seed demo products with S/M/L variants (idempotent)."""
        from app.extensions import db
        from app.models.product import Product
        from app.models.variant import Variant
        from app.services.product_service import slugify

        # Only seed if no products exist yet
        if Product.query.first():
            click.echo("Products already exist — skipping demo seed.")
            return

        for item in DEMO_PRODUCTS:
            db.session.add(
                Product(
                    title=item["title"],
                    slug=slugify(item["title"]),
                    description=item["description"],
                    brand="Qloset",
                    color=item["color"],
                    price_mrp=item["mrp"],
                    price_sale=item["sale"],
                    images=[],
                    active=True,
                    variants=[
                        Variant(size=size, sku=sku, stock_qty=qty)
                        for size, sku, qty in item["variants"]
                    ],
                )
            )
        db.session.commit()
        click.echo(f"Seeded {len(DEMO_PRODUCTS)} demo products.")

    @app.cli.command("set-stock")
    @click.argument("product_id", type=int)
    @click.argument("target", type=click.IntRange(min=0))
    def set_stock(product_id, target):
        """Set a product's total stock across its variants."""
        from app.services.inventory_service import set_total_stock

        product = set_total_stock(product_id, target, actor="cli")
        if product is None:
            raise click.ClickException(f"Product {product_id} not found")
        for v in product.variants:
            click.echo(f"  {v.sku} ({v.size}): {v.stock_qty}")
        click.echo(f"Total stock for {product.slug}: {product.total_stock}")

    @app.cli.command("sweep-reservations")
    def sweep_reservations():
        """Cancel PENDING orders whose stock hold has expired."""
        from app.workers.reservation_expiry import sweep_expired_reservations

        expired = sweep_expired_reservations()
        click.echo(f"Expired {len(expired)} order(s).")
        for order_id in expired:
            click.echo(f"  order {order_id}")

    @app.cli.command("stats")
    def stats():
        """Show order counts by status."""
        from app.services.order_service import get_stats

        s = get_stats()
        total = sum(s.values())
        click.echo(f"Total orders: {total}")
        for status, count in sorted(s.items()):
            click.echo(f"  {status}: {count}")
