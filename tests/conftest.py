import pytest
from app import create_app
from app.extensions import db as _db
from app.models.product import Product
from app.models.variant import Variant
from app.schemas import CreateOrderRequest
from app.services.admission import AdmissionPolicy


@pytest.fixture(scope="session")
def app():
    """Create application for testing."""
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()


@pytest.fixture
def db(app):
    """Fresh schema per test; services commit, so nested rollback won't do."""
    with app.app_context():
        _db.session.remove()
        _db.drop_all()
        _db.create_all()
        yield _db
        _db.session.remove()


@pytest.fixture
def client(app, db):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    return {"Authorization": f"Bearer {app.config['ADMIN_API_TOKEN']}"}


@pytest.fixture
def open_admission():
    """No polygons, no pincode allow-list: any well-formed pincode passes."""
    return AdmissionPolicy()


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(stocks=(5, 5, 5), price_sale=1499, price_mrp=1999, title=None, active=True):
        counter["n"] += 1
        n = counter["n"]
        product = Product(
            title=title or f"Test Dress {n}",
            slug=f"test-dress-{n}",
            price_mrp=price_mrp,
            price_sale=price_sale,
            images=[],
            active=active,
            variants=[
                Variant(size=size, sku=f"TD{n}-{size}", stock_qty=qty)
                for size, qty in zip(["S", "M", "L", "XL", "XXL"], stocks)
            ],
        )
        db.session.add(product)
        db.session.commit()
        return product

    return _make


@pytest.fixture
def stock_of(db):
    def _stock(variant_id):
        return db.session.get(Variant, variant_id).stock_qty

    return _stock


@pytest.fixture
def order_request():
    """Build a CreateOrderRequest from ``[(variant_id, qty), ...]``."""

    def _build(items, pincode="600017", phone=None, **address):
        addr = {
            "name": "Asha",
            "phone": "9000000000",
            "line1": "12 Usman Road",
            "pincode": pincode,
        }
        addr.update(address)
        return CreateOrderRequest.model_validate(
            {
                "userPhone": phone,
                "tbyb": False,
                "address": addr,
                "items": [{"variantId": vid, "qty": qty} for vid, qty in items],
            }
        )

    return _build
