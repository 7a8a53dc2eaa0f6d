"""
FastAPI dependencies shared by the storefront and admin routes.
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.database import get_db
from storefront.services.admin_feed import AdminOrderFeed, get_admin_feed
from storefront.services.cache import QueryCache, get_query_cache
from storefront.services.cart import CartRegistry, CartStore, get_cart_registry
from storefront.services.realtime import BaseChangeNotifier, get_change_notifier
from storefront.store import DataStore


def get_notifier() -> BaseChangeNotifier:
    return get_change_notifier()


def get_cache() -> QueryCache:
    return get_query_cache()


def get_feed() -> AdminOrderFeed:
    return get_admin_feed()


def get_registry() -> CartRegistry:
    return get_cart_registry()


async def get_store(
    db: AsyncSession = Depends(get_db),
    notifier: BaseChangeNotifier = Depends(get_notifier),
) -> DataStore:
    return DataStore(db, notifier)


def get_cart(
    x_session_id: str = Header(..., alias="X-Session-Id", min_length=8, max_length=128),
    registry: CartRegistry = Depends(get_registry),
) -> CartStore:
    """The cart belonging to the caller's browsing session."""
    return registry.get(x_session_id)


def is_admin_token(token: Optional[str]) -> bool:
    expected = get_settings().admin_api_token
    if not expected or not token:
        return False
    return secrets.compare_digest(token, expected)


def require_admin(
    x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
) -> None:
    """Opaque capability check for the admin console."""
    if not is_admin_token(x_admin_token):
        raise HTTPException(status_code=401, detail="Admin access required")
