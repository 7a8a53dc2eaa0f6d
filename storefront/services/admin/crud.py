"""
Generic single-table manager used by the admin console.

Every mutation is one record written through DataStore, which commits and
publishes a change event; the query cache listens for those events and
drops its copy of the table.
"""

import logging
import uuid
from typing import Any, ClassVar, Generic, List, Optional, TypeVar

from storefront.store import DataStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class CrudManager(Generic[ModelT]):
    """list / create / update / delete / toggle over one table."""

    model: ClassVar[type]
    order_by: ClassVar[str] = "created_at"
    descending: ClassVar[bool] = False
    toggle_field: ClassVar[Optional[str]] = None
    # Filters applied to the storefront (non-admin) listing
    public_filters: ClassVar[dict[str, Any]] = {}

    def __init__(self, store: DataStore):
        self.store = store

    @property
    def table(self) -> str:
        return self.model.__tablename__

    async def list(self, **filters: Any) -> List[ModelT]:
        return await self.store.fetch_all(
            self.model,
            filters=filters,
            order_by=self.order_by,
            descending=self.descending,
        )

    async def list_public(self) -> List[ModelT]:
        return await self.list(**self.public_filters)

    async def get(self, record_id: uuid.UUID) -> ModelT:
        return await self.store.get_or_404(self.model, record_id)

    async def create(self, values: dict[str, Any]) -> ModelT:
        await self.validate(values)
        obj = await self.store.insert(self.model, values)
        logger.info(f"Created {self.table} {obj.id}")
        return obj

    async def update(self, record_id: uuid.UUID, values: dict[str, Any]) -> ModelT:
        await self.validate(values)
        obj = await self.store.update(self.model, record_id, values)
        logger.info(f"Updated {self.table} {record_id}")
        return obj

    async def delete(self, record_id: uuid.UUID) -> None:
        await self.store.delete(self.model, record_id)
        logger.info(f"Deleted {self.table} {record_id}")

    async def toggle(self, record_id: uuid.UUID) -> ModelT:
        if self.toggle_field is None:
            raise NotImplementedError(f"{type(self).__name__} has no toggle field")
        obj = await self.store.toggle(self.model, record_id, self.toggle_field)
        logger.info(f"Toggled {self.table}.{self.toggle_field} for {record_id}")
        return obj

    async def validate(self, values: dict[str, Any]) -> None:
        """Hook for cross-table checks before a write."""
