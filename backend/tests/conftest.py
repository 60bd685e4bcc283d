"""
Pytest fixtures for refurbshop backend tests.

Provides the app on an in-memory database, a clean session per test, catalog
and inventory factories, and a staff-authorised test client.
"""

from decimal import Decimal

import pytest

from refurbshop import create_app
from refurbshop.extensions import db
from refurbshop.models import Device, InventoryItem, UpsellProduct
from refurbshop.models.inventory import new_id
from refurbshop.services.shipping_service import ShippingConfig, save_shipping_config
from refurbshop.validation import CheckoutRequest, ShippingAddress, UpsellSelection


STAFF_TOKEN = "test-staff-token"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PAYMENT_MODE': 'stub',
        'STRIPE_SECRET_KEY': None,
        'STRIPE_WEBHOOK_SECRET': None,
        'STAFF_API_TOKEN': STAFF_TOKEN,
        'STOREFRONT_URL': 'https://shop.example.com',
        'TXN_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def stripe_mode(app, monkeypatch):
    """Switch the running app to stripe mode for one test."""
    monkeypatch.setitem(app.config, 'PAYMENT_MODE', 'stripe')
    monkeypatch.setitem(app.config, 'STRIPE_SECRET_KEY', 'sk_test_dummy')
    monkeypatch.setitem(app.config, 'STRIPE_WEBHOOK_SECRET', 'whsec_dummy')
    return app


@pytest.fixture(scope='function')
def shipping_rates(db_session):
    """Phone 10, Tablet 15, default 10, free shipping from 200."""
    config = ShippingConfig(
        rates={"Phone": Decimal("10.00"), "Tablet": Decimal("15.00")},
        default_rate=Decimal("10.00"),
        free_threshold=Decimal("200.00"),
    )
    save_shipping_config(config)
    db_session.commit()
    return config


@pytest.fixture(scope='function')
def device(db_session):
    """Create a catalog device."""
    device = Device(make="Apple", model="iPhone 13", storage="128GB", category="Phone")
    db_session.add(device)
    db_session.commit()
    return device


@pytest.fixture(scope='function')
def make_item(db_session, device):
    """Factory for inventory items (listed and priced by default)."""
    counter = {"n": 0}

    def _make(status="listed", price="100.00", category="Phone", grade="A", device_id=None):
        counter["n"] += 1
        item = InventoryItem(
            id=new_id(),
            inventory_number=counter["n"],
            serial=f"SN-{counter['n']:05d}",
            device_id=device_id or device.id,
            category=category,
            cosmetic_grade=grade,
            sell_price_aud=Decimal(price) if price is not None else None,
            status=status,
            listed=status == "listed",
            source_type="trade-in",
            images=[],
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture(scope='function')
def upsell(db_session):
    """Create an active add-on product."""
    product = UpsellProduct(
        name="Tempered glass",
        price_aud=Decimal("15.00"),
        compatible_categories=["Phone"],
        active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


def make_checkout_request(inventory_ids, upsells=(), email="jane@example.com") -> CheckoutRequest:
    """Helper to build a valid checkout request."""
    return CheckoutRequest(
        inventory_ids=tuple(inventory_ids),
        upsells=tuple(UpsellSelection(upsell_id=u, quantity=q) for u, q in upsells),
        customer_name="Jane Citizen",
        customer_email=email,
        shipping_address=ShippingAddress(
            line1="1 George St",
            city="Sydney",
            region="NSW",
            postcode="2000",
            country="AU",
        ),
    )


def checkout_payload(inventory_ids, **overrides) -> dict:
    """Helper to build a valid checkout JSON body."""
    payload = {
        "items": [{"inventoryId": i} for i in inventory_ids],
        "customerName": "Jane Citizen",
        "customerEmail": "jane@example.com",
        "shippingAddress": {
            "line1": "1 George St",
            "city": "Sydney",
            "region": "NSW",
            "postcode": "2000",
            "country": "AU",
        },
    }
    payload.update(overrides)
    return payload


def auth_headers(token: str = STAFF_TOKEN) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
