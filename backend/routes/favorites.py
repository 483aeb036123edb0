# backend/routes/favorites.py
from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import get_optional_user
from utils.audit import write_log, client_ip
from models.users import User
from schemas.favorite import FavoritesOut, FavoriteToggleOut
from services.catalog import CatalogStore
from services.favorites import FavoritesSet

router = APIRouter(prefix="/favorites", tags=["Favorites"])

@router.get("", response_model=FavoritesOut)
def list_favorites(
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    favorites = FavoritesSet(db, current_user)
    return {"product_ids": sorted(favorites.rehydrate())}

# Flip one product in or out of the user's favorites
@router.post("/{product_id}/toggle", response_model=FavoriteToggleOut)
def toggle_favorite(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    favorites = FavoritesSet(db, current_user)
    favorites.rehydrate()
    if not favorites.contains(product_id):
        CatalogStore(db).get_product(product_id)

    is_favorite = favorites.toggle(product_id)
    write_log(db, user_id=current_user.id, action="FAVORITE_TOGGLE", resource="favorites",
              ip=client_ip(request), meta={"product_id": product_id, "is_favorite": is_favorite})
    return {"product_id": product_id, "is_favorite": is_favorite}
