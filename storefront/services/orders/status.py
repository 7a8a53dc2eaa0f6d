"""
Order Status State Machine

Lifecycle:
    pending → confirmed → preparing → ready → completed
    pending → cancelled

completed and cancelled are terminal. Admins move an order one step at a
time through named actions; available_actions() is what the console offers
for the current status.

Every transition is a single persisted write of status + updated_at. With
ENFORCE_STATUS_TRANSITIONS on (the default), direct status writes that are
not an edge of the graph are rejected here, whoever the caller is.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from storefront.core.config import get_settings
from storefront.core.errors import InvalidStatusTransition
from storefront.models import Order, OrderStatus
from storefront.store import DataStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusAction:
    name: str
    source: OrderStatus
    target: OrderStatus
    label: str


ACTIONS: dict[str, StatusAction] = {
    action.name: action
    for action in (
        StatusAction("accept", OrderStatus.PENDING, OrderStatus.CONFIRMED, "Accept"),
        StatusAction("reject", OrderStatus.PENDING, OrderStatus.CANCELLED, "Reject"),
        StatusAction("start_preparing", OrderStatus.CONFIRMED, OrderStatus.PREPARING, "Start preparing"),
        StatusAction("mark_ready", OrderStatus.PREPARING, OrderStatus.READY, "Ready for pickup"),
        StatusAction("complete", OrderStatus.READY, OrderStatus.COMPLETED, "Complete"),
    )
}

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    status: frozenset(a.target for a in ACTIONS.values() if a.source == status)
    for status in OrderStatus
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)
ACTIVE_STATUSES = frozenset(OrderStatus) - TERMINAL_STATUSES


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def available_actions(status: OrderStatus) -> list[StatusAction]:
    """Actions the admin console offers for an order in this status."""
    return [action for action in ACTIONS.values() if action.source == status]


def resolve_action(name: str, current: OrderStatus) -> StatusAction:
    action = ACTIONS.get(name)
    if action is None:
        raise InvalidStatusTransition(current.value, name)
    if action.source != current:
        raise InvalidStatusTransition(current.value, action.target.value)
    return action


class OrderStatusService:
    """Applies lifecycle transitions to persisted orders."""

    def __init__(self, store: DataStore, enforce: Optional[bool] = None):
        self.store = store
        self.enforce = get_settings().enforce_status_transitions if enforce is None else enforce

    async def apply_action(self, order_id: uuid.UUID, action_name: str) -> Order:
        """Run a named admin action (accept, reject, ...) on an order."""
        order = await self.store.get_or_404(Order, order_id)
        action = resolve_action(action_name, order.status)
        return await self._write(order, action.target)

    async def set_status(
        self, order_id: uuid.UUID, target: Union[OrderStatus, str]
    ) -> Order:
        """Direct status write, checked against the lifecycle graph when enforcing."""
        target = OrderStatus(target)
        order = await self.store.get_or_404(Order, order_id)
        if self.enforce and not can_transition(order.status, target):
            logger.warning(
                f"Rejected status change for order {order.reference}: "
                f"{order.status.value} → {target.value}"
            )
            raise InvalidStatusTransition(order.status.value, target.value)
        return await self._write(order, target)

    async def _write(self, order: Order, target: OrderStatus) -> Order:
        previous = order.status
        updated = await self.store.update(
            Order,
            order.id,
            {"status": target, "updated_at": datetime.now(timezone.utc)},
        )
        logger.info(f"Order {updated.reference}: {previous.value} → {target.value}")
        return updated
