# backend/schemas/favorite.py
from pydantic import BaseModel
from typing import List


class FavoritesOut(BaseModel):
    product_ids: List[int]


class FavoriteToggleOut(BaseModel):
    product_id: int
    is_favorite: bool
