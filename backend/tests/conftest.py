"""Shared pytest fixtures: in-memory database, users, catalog and an API client."""
import os

# Must be set before config/database are imported
os.environ["DATABASE_URL"] = "sqlite://"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine, init_db
from models.users import User
from services.catalog import CatalogStore
from services.checkout import CustomerInfo
from utils.hashing import get_password_hash


@pytest.fixture
def db():
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _user(db, email, name, is_admin=False):
    user = User(email=email, password_hash=get_password_hash("secret123"), name=name,
                phone="0500000000", is_admin=is_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db):
    return _user(db, "sara@mail.com", "Sara")


@pytest.fixture
def other_customer(db):
    return _user(db, "omar@mail.com", "Omar")


@pytest.fixture
def admin(db):
    return _user(db, "admin@mail.com", "Admin", is_admin=True)


@pytest.fixture
def catalog(db):
    store = CatalogStore(db)
    store.add_category("Men")
    store.add_category("Women")
    return store


@pytest.fixture
def products(catalog):
    """P1 (100), P2 (50) in stock, P3 out of stock."""
    p1 = catalog.add_product({"name": "P1", "price": Decimal("100"), "category": "Men", "stock_quantity": 10})
    p2 = catalog.add_product({"name": "P2", "price": Decimal("50"), "category": "Women", "stock_quantity": 5})
    p3 = catalog.add_product({"name": "P3", "price": Decimal("80"), "category": "Men",
                              "in_stock": False, "stock_quantity": 0})
    return p1, p2, p3


@pytest.fixture
def shipping():
    return CustomerInfo(name="Sara Ali", email="sara@mail.com", phone="0500000000",
                        address="12 King Road", city="Riyadh", postal_code="11564")


@pytest.fixture
def client(db):
    from main import app
    with TestClient(app) as c:
        yield c

