"""
Admin console managers.

Thin create/update/delete/toggle wrappers over single tables, plus the
weekly hours batch and the business settings row.
"""

from storefront.services.admin.business import BusinessSettingsManager
from storefront.services.admin.crud import CrudManager
from storefront.services.admin.hours import DayHours, HoursManager
from storefront.services.admin.managers import (
    DealManager,
    MenuCategoryManager,
    MenuItemManager,
    ReviewManager,
)

__all__ = [
    "BusinessSettingsManager",
    "CrudManager",
    "DayHours",
    "DealManager",
    "HoursManager",
    "MenuCategoryManager",
    "MenuItemManager",
    "ReviewManager",
]
