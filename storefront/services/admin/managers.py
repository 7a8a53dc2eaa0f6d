"""Concrete admin managers for menu, deals and reviews."""

from datetime import datetime, timezone
from typing import Any

from storefront.core.errors import NotFoundError
from storefront.models import DailyDeal, GoogleReview, MenuCategory, MenuItem
from storefront.services.admin.crud import CrudManager


class TouchUpdatedAt:
    """Stamp updated_at explicitly, as the storefront tables expect on edits."""

    async def update(self, record_id, values: dict[str, Any]):
        values = {**values, "updated_at": datetime.now(timezone.utc)}
        return await super().update(record_id, values)


class MenuCategoryManager(TouchUpdatedAt, CrudManager[MenuCategory]):
    model = MenuCategory
    order_by = "display_order"


class MenuItemManager(TouchUpdatedAt, CrudManager[MenuItem]):
    model = MenuItem
    order_by = "display_order"
    toggle_field = "is_available"
    public_filters = {"is_available": True}

    async def validate(self, values: dict[str, Any]) -> None:
        category_id = values.get("category_id")
        if category_id is not None and await self.store.fetch_one(MenuCategory, category_id) is None:
            raise NotFoundError(f"Menu category {category_id} not found")


class DealManager(TouchUpdatedAt, CrudManager[DailyDeal]):
    model = DailyDeal
    descending = True
    toggle_field = "is_active"
    public_filters = {"is_active": True}

    async def validate(self, values: dict[str, Any]) -> None:
        menu_item_id = values.get("menu_item_id")
        if menu_item_id is not None and await self.store.fetch_one(MenuItem, menu_item_id) is None:
            raise NotFoundError(f"Menu item {menu_item_id} not found")


class ReviewManager(CrudManager[GoogleReview]):
    model = GoogleReview
    descending = True
    toggle_field = "is_visible"
    public_filters = {"is_visible": True}
