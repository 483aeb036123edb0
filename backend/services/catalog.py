# backend/services/catalog.py
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.category import Category
from models.favorite import Favorite
from models.product import Product
from services.errors import NotFound, PersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSnapshot:
    """Catalog data of one product as seen at read time."""

    id: int
    name: str
    price: Decimal
    category: str
    in_stock: bool = True
    original_price: Optional[Decimal] = None
    image_url: Optional[str] = None
    description: str = ""
    rating: float = 5.0
    reviews_count: int = 0
    stock_quantity: Optional[int] = None

    @classmethod
    def from_model(cls, product: Product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            name=product.name,
            price=Decimal(product.price),
            original_price=Decimal(product.original_price) if product.original_price is not None else None,
            category=product.category.name if product.category else settings.PLACEHOLDER_CATEGORY_NAME,
            in_stock=bool(product.in_stock),
            image_url=product.image_url or settings.PLACEHOLDER_IMAGE_URL,
            description=product.description or "",
            rating=product.rating if product.rating is not None else 5.0,
            reviews_count=product.reviews_count or 0,
            stock_quantity=product.stock_quantity,
        )


# Fields an admin may set on a product, category is resolved by name
PRODUCT_FIELDS = (
    "name", "description", "price", "original_price", "image_url",
    "rating", "reviews_count", "in_stock", "stock_quantity",
)
MONEY_FIELDS = ("price", "original_price")


def _clean(data: dict) -> dict:
    out = {k: v for k, v in data.items() if k in PRODUCT_FIELDS}
    for key in MONEY_FIELDS:
        if out.get(key) is not None:
            out[key] = Decimal(str(out[key]))
    return out


class CatalogStore:
    """Source of truth for products and categories."""

    def __init__(self, db: Session):
        self.db = db

    def list_products(self, q: Optional[str] = None, category: Optional[str] = None) -> List[ProductSnapshot]:
        query = self.db.query(Product).outerjoin(Product.category)

        if q:
            like = f"%{q}%"
            query = query.filter(or_(Product.name.ilike(like), Product.description.ilike(like)))
        if category:
            query = query.filter(Category.name == category)

        rows = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
        return [ProductSnapshot.from_model(p) for p in rows]

    def list_categories(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.name.asc()).all()

    def get_product(self, product_id: int) -> ProductSnapshot:
        return ProductSnapshot.from_model(self._get_model(product_id))

    def _get_model(self, product_id: int) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFound(f"Product {product_id} not found")
        return product

    def _category_id(self, name: Optional[str]) -> Optional[int]:
        if not name:
            return None
        category = self.db.query(Category).filter(Category.name == name).first()
        if not category:
            raise NotFound(f"Category '{name}' not found")
        return category.id

    def add_category(self, name: str, description: Optional[str] = None) -> Category:
        category = Category(name=name, description=description)
        self.db.add(category)
        self._commit("add category")
        self.db.refresh(category)
        return category

    def add_product(self, data: dict) -> ProductSnapshot:
        product = Product(**_clean(data))
        product.category_id = self._category_id(data.get("category"))
        self.db.add(product)
        self._commit("add product")
        self.db.refresh(product)
        logger.info("Product %s created", product.id)
        return ProductSnapshot.from_model(product)

    def update_product(self, product_id: int, data: dict) -> ProductSnapshot:
        product = self._get_model(product_id)
        for key, value in _clean(data).items():
            setattr(product, key, value)
        if "category" in data:
            product.category_id = self._category_id(data["category"])
        self._commit("update product")
        self.db.refresh(product)
        return ProductSnapshot.from_model(product)

    def delete_product(self, product_id: int) -> None:
        # Order lines keep their product_id; reads fall back to placeholders
        product = self._get_model(product_id)
        # SQLite does not enforce ON DELETE CASCADE unless foreign keys are switched on
        self.db.query(Favorite).filter(Favorite.product_id == product_id).delete(synchronize_session=False)
        self.db.delete(product)
        self._commit("delete product")
        logger.info("Product %s deleted", product_id)

    def _commit(self, what: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Catalog write failed (%s)", what)
            raise PersistenceError(f"Could not {what}: {e}") from e
