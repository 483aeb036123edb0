# backend/models/favorite.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, func
from database import Base

# A product marked as favorite by a user
class Favorite(Base):
    __tablename__ = "favorites"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        # Concurrent toggles from several tabs collapse into a single row
        UniqueConstraint("user_id", "product_id", name="uq_favorite_user_product"),
    )
