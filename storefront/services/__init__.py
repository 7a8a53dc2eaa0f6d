"""
                        Services Module

Business logic behind the storefront and the admin console.

Services:
    - cart: Per-session cart store and registry
    - orders: Checkout flow and the order status lifecycle
    - availability: Open/closed check from the weekly schedule
    - admin: Single-table managers, weekly hours, business settings
    - realtime: Change notifier (in-memory or Redis pub/sub)
    - cache: Public read cache invalidated by change events
    - admin_feed: Live order list pushed to admin consoles
"""

from storefront.services.cache import QueryCache
from storefront.services.cart import CartRegistry, CartStore

__all__ = ["CartRegistry", "CartStore", "QueryCache"]
