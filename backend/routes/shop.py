# backend/routes/shop.py
from typing import Optional, List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from schemas.product import ProductOut, ProductList, CategoryOut
from services.catalog import CatalogStore, ProductSnapshot

router = APIRouter(
    prefix="/shop",
    tags=["Shop"]
)

def product_to_out(p: ProductSnapshot) -> ProductOut:
    return ProductOut(
        id=p.id,
        name=p.name,
        description=p.description,
        price=float(p.price),
        original_price=float(p.original_price) if p.original_price is not None else None,
        image_url=p.image_url,
        category=p.category,
        rating=p.rating,
        reviews_count=p.reviews_count,
        in_stock=p.in_stock,
        stock_quantity=p.stock_quantity,
    )

# Catalog categories, ordered by name
@router.get("/categories", response_model=List[CategoryOut])
def get_categories(db: Session = Depends(get_db)):
    return CatalogStore(db).list_categories()

# Catalog products, newest first; browsing needs no account
@router.get("/products", response_model=ProductList)
def list_products_for_shop(
    q: Optional[str] = Query(None, description="Search by name or description"),
    category: Optional[str] = Query(None, description="Filter by category name"),
    db: Session = Depends(get_db),
):
    items = [product_to_out(p) for p in CatalogStore(db).list_products(q=q, category=category)]
    return {"items": items, "total": len(items)}

@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return product_to_out(CatalogStore(db).get_product(product_id))
