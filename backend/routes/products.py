# backend/routes/products.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import admin_required
from utils.audit import write_log, client_ip
from models.users import User
from schemas.product import ProductCreate, ProductEditRequest, ProductOut, CategoryCreate, CategoryOut
from services.catalog import CatalogStore
from routes.shop import product_to_out

router = APIRouter(tags=["Products"])

# Create a catalog category (admin console)
@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    category = CatalogStore(db).add_category(payload.name, payload.description)
    write_log(db, user_id=current_user.id, action="CATEGORY_CREATE", resource="categories",
              ip=client_ip(request), meta={"category_id": category.id, "name": category.name})
    return category

# Add a product to the catalog (admin console)
@router.post("/products", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    product = CatalogStore(db).add_product(payload.model_dump())
    write_log(db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
              ip=client_ip(request), meta={"product_id": product.id, "name": product.name})
    return product_to_out(product)

# Partial product update; only fields present in the body are changed
@router.patch("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductEditRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    changes = payload.model_dump(exclude_unset=True)
    product = CatalogStore(db).update_product(product_id, changes)
    write_log(db, user_id=current_user.id, action="PRODUCT_UPDATE", resource="products",
              ip=client_ip(request), meta={"product_id": product_id, "fields": sorted(changes)})
    return product_to_out(product)

@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    CatalogStore(db).delete_product(product_id)
    write_log(db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
              ip=client_ip(request), meta={"product_id": product_id})
