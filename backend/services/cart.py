# backend/services/cart.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Tuple

from services.catalog import ProductSnapshot
from services.errors import InvalidOperation


@dataclass(frozen=True)
class CartLine:
    product_id: int
    quantity: int
    price_at_add: Decimal
    product: ProductSnapshot

    @property
    def line_total(self) -> Decimal:
        return self.price_at_add * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    """Frozen copy of the cart handed to checkout."""

    lines: Tuple[CartLine, ...]

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines


class Cart:
    """Working cart of one browsing session.

    Holds at most one line per product id. Lines are replaced rather than
    mutated, so snapshots taken earlier never change.
    """

    def __init__(self):
        self._lines: Dict[int, CartLine] = {}

    def add(self, product: ProductSnapshot, qty: int = 1) -> CartLine:
        if not product.in_stock:
            raise InvalidOperation(f"Product '{product.name}' is out of stock")
        if qty < 1:
            raise InvalidOperation("Quantity must be a positive integer")

        line = self._lines.get(product.id)
        if line:
            line = CartLine(line.product_id, line.quantity + qty, line.price_at_add, line.product)
        else:
            line = CartLine(product.id, qty, product.price, product)
        self._lines[product.id] = line
        return line

    def remove(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def set_quantity(self, product_id: int, qty: int) -> None:
        if qty <= 0:
            self.remove(product_id)
            return
        line = self._lines.get(product_id)
        if line:
            self._lines[product_id] = CartLine(line.product_id, qty, line.price_at_add, line.product)

    def total(self) -> Decimal:
        return self.snapshot().total

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def get(self, product_id: int):
        return self._lines.get(product_id)

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(tuple(self._lines.values()))

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id) -> bool:
        return product_id in self._lines
