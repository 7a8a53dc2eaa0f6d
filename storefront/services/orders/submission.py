"""
Order Submission Flow

Turns a non-empty cart plus the customer's contact details into a stored
Order with one OrderItem per cart line.

Steps:
    1. Validate the contact form (field errors never reach the database)
    2. Insert the Order with status "pending" and the cart total
    3. Insert the order lines, snapshotting name and unit price
    4. Clear the cart

Steps 2 and 3 are separate commits. If step 3 fails the Order stays behind
without lines and OrderLinesPersistenceError names it; nothing is rolled
back. ATOMIC_ORDER_WRITES=true commits both steps together instead.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from storefront.core.config import get_settings
from storefront.core.errors import (
    ContactValidationError,
    OrderLinesPersistenceError,
    PersistenceError,
)
from storefront.models import Order, OrderItem, OrderStatus
from storefront.schemas import OrderContact
from storefront.services.cart import CartStore
from storefront.services.realtime import ChangeEventType
from storefront.store import DataStore

logger = logging.getLogger(__name__)


def validation_messages(exc: ValidationError) -> dict[str, str]:
    """Flatten a pydantic error into {field: message}, first error per field."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "__root__"
        if field in errors:
            continue
        if err["type"] == "value_error" and "error" in err.get("ctx", {}):
            errors[field] = str(err["ctx"]["error"])
        else:
            errors[field] = err["msg"]
    return errors


def validate_contact(data: dict[str, Any]) -> OrderContact:
    try:
        return OrderContact.model_validate(data)
    except ValidationError as e:
        raise ContactValidationError(validation_messages(e)) from e


class OrderSubmissionFlow:
    """Checkout: contact validation, two-phase order write, cart reset."""

    def __init__(self, store: DataStore, atomic: Optional[bool] = None):
        self.store = store
        self.atomic = get_settings().atomic_order_writes if atomic is None else atomic

    async def submit(self, cart: CartStore, contact_data: dict[str, Any]) -> Order:
        """
        Place an order for everything in the cart.

        Args:
            cart: The session's cart; must not be empty
            contact_data: Raw contact form fields

        Returns:
            The stored Order (lines included)

        Raises:
            ContactValidationError: Contact form rejected
            PersistenceError: The order row could not be written
            OrderLinesPersistenceError: The order was written, its lines were not
        """
        if cart.is_empty:
            raise ValueError("Cannot submit an empty cart")

        contact = validate_contact(contact_data)

        order_values = {
            **contact.model_dump(),
            "total_amount": cart.total_amount,
            "status": OrderStatus.PENDING,
        }
        lines = cart.lines

        if self.atomic:
            order = await self._write_atomic(order_values, lines)
        else:
            order = await self._write_two_phase(order_values, lines)

        cart.clear()
        logger.info(
            f"Order {order.reference} placed by {order.customer_name}: "
            f"{len(lines)} lines, total {order.total_amount}"
        )
        return await self.store.get_or_404(Order, order.id)

    async def _write_two_phase(self, order_values: dict[str, Any], lines) -> Order:
        # Announced after the lines so a re-fetch sees the full order
        order = await self.store.insert(Order, order_values, notify=False)
        # The rollback after a failed line write expires the order instance
        order_id, reference = order.id, order.reference
        try:
            await self.store.insert_many(OrderItem, self._line_rows(order_id, lines))
        except PersistenceError as e:
            logger.error(f"Order {reference} saved without its lines: {e.detail}")
            await self.store.announce(Order, ChangeEventType.INSERT, order_id)
            raise OrderLinesPersistenceError(order_id) from e
        await self.store.announce(Order, ChangeEventType.INSERT, order_id)
        return order

    async def _write_atomic(self, order_values: dict[str, Any], lines) -> Order:
        (order,) = self.store.stage(Order, [order_values])
        await self.store.flush(Order)
        items = self.store.stage(OrderItem, self._line_rows(order.id, lines))
        await self.store.commit_staged([order, *items])
        return order

    @staticmethod
    def _line_rows(order_id, lines) -> list[dict[str, Any]]:
        return [
            {
                "order_id": order_id,
                "menu_item_id": line.menu_item.id,
                "item_name": line.menu_item.name,
                "quantity": line.quantity,
                "unit_price": line.menu_item.price,
                "special_requests": line.special_requests or None,
                "position": position,
            }
            for position, line in enumerate(lines)
        ]
