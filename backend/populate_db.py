# backend/populate_db.py
"""Seed a fresh database with an admin account and a small perfume catalog.

Usage: python populate_db.py  (run from the backend folder)
"""
import os
from decimal import Decimal

from database import SessionLocal, init_db
from models.category import Category
from models.product import Product
from models.users import User
from utils.hashing import get_password_hash

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@storefront.local")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

CATEGORIES = {
    "Men": "Fragrances for men",
    "Women": "Fragrances for women",
    "Unisex": "Shared fragrances",
}

PRODUCTS = [
    # name, category, price, original price, stock quantity
    ("Oud Royal", "Men", "120.00", "150.00", 25),
    ("Amber Night", "Men", "85.50", None, 40),
    ("Rose Musk", "Women", "95.00", "110.00", 30),
    ("Jasmine Bloom", "Women", "70.00", None, 0),
    ("Cedar & Sage", "Unisex", "65.00", None, 12),
]


def seed(session) -> dict:
    """Insert missing rows; running it twice changes nothing."""
    created = {"admin": 0, "categories": 0, "products": 0}

    if not session.query(User).filter(User.email == ADMIN_EMAIL).first():
        session.add(User(email=ADMIN_EMAIL, password_hash=get_password_hash(ADMIN_PASSWORD),
                         name="Administrator", is_admin=True))
        created["admin"] = 1

    categories = {c.name: c for c in session.query(Category).all()}
    for name, description in CATEGORIES.items():
        if name not in categories:
            categories[name] = Category(name=name, description=description)
            session.add(categories[name])
            created["categories"] += 1
    session.flush()

    existing = {name for (name,) in session.query(Product.name).all()}
    for name, category, price, original, stock in PRODUCTS:
        if name in existing:
            continue
        session.add(Product(
            name=name,
            description=f"{name} eau de parfum",
            price=Decimal(price),
            original_price=Decimal(original) if original else None,
            category_id=categories[category].id,
            in_stock=stock > 0,
            stock_quantity=stock,
        ))
        created["products"] += 1

    session.commit()
    return created


if __name__ == "__main__":
    init_db()
    session = SessionLocal()
    try:
        result = seed(session)
        print(f"Seed finished: {result}")
    finally:
        session.close()
