# backend/models/product.py
from sqlalchemy import Column, Integer, String, Numeric, Float, Boolean, ForeignKey, DateTime, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# Model Product
# A single catalog item. The catalog is the only writer; carts and orders
# copy price and display data out of it at the moment they need them.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)

    # Prices are kept in the currency's natural precision.
    price = Column(Numeric(10, 2), CheckConstraint("price >= 0"), nullable=False)
    original_price = Column(Numeric(10, 2), nullable=True)

    image_url = Column(String, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    rating = Column(Float, nullable=False, default=5.0)
    reviews_count = Column(Integer, nullable=False, default=0)

    # Stock data; in_stock is what gates adding to a cart.
    in_stock = Column(Boolean, nullable=False, default=True)
    stock_quantity = Column(Integer, CheckConstraint("stock_quantity >= 0"), nullable=True, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    category = relationship("Category", lazy="joined")
