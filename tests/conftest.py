"""Shared pytest fixtures: an app on in-memory SQLite, users per role, a small menu."""

from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from cheesy_pos import create_app
from cheesy_pos.extensions import db
from cheesy_pos.model import Product, User
from cheesy_pos.services.catalog_service import ProductSnapshot
from cheesy_pos.utils.decorators import ROLES


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "JWT_SECRET_KEY": "test-secret-key-with-at-least-32-bytes",
        "PRINTER_SETTINGS_PATH": str(tmp_path / "printer_settings.json"),
        "RECEIPT_SPOOL_DIR": str(tmp_path / "receipts"),
        "PRINTER_BACKEND": "spool",
        "STORE_UTC_OFFSET_HOURS": 8,
        "RECEIPT_PREFIX": "MSC",
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def users(app):
    out = {}
    for role in ROLES:
        u = User(
            email=f"{role}@example.com",
            name=role.title(),
            role=role,
            password_hash=generate_password_hash("secret123"),
        )
        db.session.add(u)
        out[role] = u
    db.session.commit()
    return out


@pytest.fixture
def auth_headers(users):
    """auth_headers("cashier", cart_id=None) -> request headers with a bearer token."""
    def make(role, cart_id=None):
        headers = {"Authorization": f"Bearer {create_access_token(identity=str(users[role].id))}"}
        if cart_id:
            headers["X-Cart-Id"] = cart_id
        return headers
    return make


@pytest.fixture
def products(app):
    rows = {
        "burger": Product(name="Burger", price=Decimal("50.00"), category="Sandwiches"),
        "fries": Product(name="Cheesy Fries", price=Decimal("100.00"), category="Sides"),
        "soda": Product(name="Sold Out Soda", price=Decimal("30.00"), category="Drinks", is_available=False),
    }
    db.session.add_all(rows.values())
    db.session.commit()
    return rows


def snapshot(id, name, price, category="Sandwiches", is_available=True):
    return ProductSnapshot(id=id, name=name, price=Decimal(str(price)), category=category,
                           is_available=is_available)


@pytest.fixture
def make_product():
    return snapshot
