# backend/models/category.py
from sqlalchemy import Column, Integer, String, DateTime, func
from database import Base

# Catalog category; products reference it by id, the storefront shows its name
class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
