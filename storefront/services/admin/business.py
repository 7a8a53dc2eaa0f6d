"""Single-row business settings (name, contact details, review summary)."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from storefront.models import BusinessSettings
from storefront.store import DataStore

logger = logging.getLogger(__name__)


class BusinessSettingsManager:
    def __init__(self, store: DataStore):
        self.store = store

    async def get(self) -> Optional[BusinessSettings]:
        return await self.store.fetch_first(BusinessSettings)

    async def save(self, values: dict[str, Any]) -> BusinessSettings:
        current = await self.get()
        if current is None:
            logger.info("Creating business settings")
            return await self.store.insert(BusinessSettings, values)
        values = {**values, "updated_at": datetime.now(timezone.utc)}
        return await self.store.update(BusinessSettings, current.id, values)
