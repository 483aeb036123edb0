# backend/services/favorites.py
import logging
from typing import Set

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models.favorite import Favorite
from services.errors import PersistenceError, Unauthorized

logger = logging.getLogger(__name__)


class FavoritesSet:
    """Favorite product ids of the signed-in user.

    ``_ids`` is an in-process view of the ``favorites`` table. Another tab may
    change the table in between, so writes rely on the (user, product) unique
    constraint: adding twice and removing twice are both no-ops.
    """

    def __init__(self, db: Session, user=None):
        self.db = db
        self.user = user
        self._ids: Set[int] = set()

    def _require_user(self):
        if self.user is None:
            raise Unauthorized()
        return self.user

    def rehydrate(self) -> Set[int]:
        user = self._require_user()
        try:
            rows = self.db.query(Favorite.product_id).filter(Favorite.user_id == user.id).all()
        except SQLAlchemyError as e:
            logger.exception("Loading favorites failed for user %s", user.id)
            raise PersistenceError(f"Could not load favorites: {e}") from e
        self._ids = {r[0] for r in rows}
        return set(self._ids)

    def contains(self, product_id: int) -> bool:
        return product_id in self._ids

    @property
    def product_ids(self) -> Set[int]:
        return set(self._ids)

    def toggle(self, product_id: int) -> bool:
        """Flip membership once and return the new state."""
        user = self._require_user()
        if product_id in self._ids:
            self._remove(user.id, product_id)
            self._ids.discard(product_id)
            return False
        self._add(user.id, product_id)
        self._ids.add(product_id)
        return True

    def _add(self, user_id: int, product_id: int) -> None:
        try:
            self.db.add(Favorite(user_id=user_id, product_id=product_id))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Favorite %s/%s already stored", user_id, product_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Adding favorite failed")
            raise PersistenceError(f"Could not add favorite: {e}") from e

    def _remove(self, user_id: int, product_id: int) -> None:
        try:
            self.db.query(Favorite).filter(
                Favorite.user_id == user_id, Favorite.product_id == product_id
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Removing favorite failed")
            raise PersistenceError(f"Could not remove favorite: {e}") from e

    def sign_out(self) -> None:
        self.user = None
        self._ids.clear()
