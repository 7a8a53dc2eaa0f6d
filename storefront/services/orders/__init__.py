"""
Order services: checkout and the admin-driven status lifecycle.
"""

from storefront.services.orders.status import (
    ACTIONS,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    OrderStatusService,
    StatusAction,
    available_actions,
    can_transition,
)
from storefront.services.orders.submission import OrderSubmissionFlow, validate_contact

__all__ = [
    "ACTIONS",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "OrderStatusService",
    "OrderSubmissionFlow",
    "StatusAction",
    "available_actions",
    "can_transition",
    "validate_contact",
]
