# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


# Base configuration for ORM and dataclass compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Catalog entry as shown in the storefront
class ProductOut(ORMBase):
    id: int
    name: str
    description: str = ""
    price: float
    original_price: Optional[float] = None
    image_url: Optional[str] = None
    category: str
    rating: float
    reviews_count: int
    in_stock: bool
    stock_quantity: Optional[int] = None


class CategoryOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None


# Schema for creating a new product (admin console)
class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)
    image_url: Optional[str] = None
    category: Optional[str] = Field(None, description="Category name")
    rating: float = Field(default=5.0, ge=0, le=5)
    reviews_count: int = Field(default=0, ge=0)
    in_stock: bool = True
    stock_quantity: Optional[int] = Field(default=0, ge=0)


# Schema for partial product updates - all fields optional
class ProductEditRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    reviews_count: Optional[int] = Field(None, ge=0)
    in_stock: Optional[bool] = None
    stock_quantity: Optional[int] = Field(None, ge=0)


class ProductList(BaseModel):
    items: List[ProductOut]
    total: int


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
