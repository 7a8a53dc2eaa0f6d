"""
Cart Store

In-memory cart owned by one browsing session. The methods on CartStore are
the only write path to its lines; handlers receive the store for their
session from CartRegistry instead of touching shared state.

Lines are keyed by menu item id: adding an item already in the cart grows
that line rather than creating a second one, and a line whose quantity
drops to zero or below is removed.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartMenuItem:
    """The parts of a menu item the cart needs to price and snapshot a line."""
    id: uuid.UUID
    name: str
    price: Decimal

    @classmethod
    def from_model(cls, menu_item: Any) -> "CartMenuItem":
        return cls(id=menu_item.id, name=menu_item.name, price=Decimal(str(menu_item.price)))


@dataclass
class CartLine:
    menu_item: CartMenuItem
    quantity: int
    special_requests: Optional[str] = None

    @property
    def subtotal(self) -> Decimal:
        return self.menu_item.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "menu_item_id": self.menu_item.id,
            "name": self.menu_item.name,
            "unit_price": self.menu_item.price,
            "quantity": self.quantity,
            "special_requests": self.special_requests,
            "subtotal": self.subtotal,
        }


class CartStore:
    """Ordered collection of cart lines, at most one per menu item."""

    def __init__(self):
        self._lines: list[CartLine] = []

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total_amount(self) -> Decimal:
        return sum((line.subtotal for line in self._lines), Decimal("0"))

    def get_line(self, menu_item_id: uuid.UUID) -> Optional[CartLine]:
        for line in self._lines:
            if line.menu_item.id == menu_item_id:
                return line
        return None

    def add_item(
        self,
        menu_item: CartMenuItem,
        quantity: int = 1,
        special_requests: Optional[str] = None,
    ) -> None:
        line = self.get_line(menu_item.id)
        if line is None:
            if quantity > 0:
                self._lines.append(CartLine(menu_item, quantity, special_requests))
            return

        line.quantity += quantity
        line.menu_item = menu_item
        if special_requests:
            line.special_requests = special_requests
        if line.quantity <= 0:
            self.remove_item(menu_item.id)

    def remove_item(self, menu_item_id: uuid.UUID) -> None:
        self._lines = [line for line in self._lines if line.menu_item.id != menu_item_id]

    def update_quantity(self, menu_item_id: uuid.UUID, quantity: int) -> None:
        """Set a line's quantity (absolute, not additive); <= 0 removes it."""
        if quantity <= 0:
            self.remove_item(menu_item_id)
            return
        line = self.get_line(menu_item_id)
        if line is not None:
            line.quantity = quantity

    def clear(self) -> None:
        self._lines = []

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self._lines],
            "total_items": self.total_items,
            "total_amount": self.total_amount,
        }


class CartRegistry:
    """Carts for every active browsing session, keyed by session id."""

    def __init__(self):
        self._carts: dict[str, CartStore] = {}

    def get(self, session_id: str) -> CartStore:
        cart = self._carts.get(session_id)
        if cart is None:
            cart = self._carts[session_id] = CartStore()
            logger.debug(f"Cart opened for session {session_id}")
        return cart

    def discard(self, session_id: str) -> None:
        self._carts.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._carts)


@lru_cache()
def get_cart_registry() -> CartRegistry:
    return CartRegistry()
