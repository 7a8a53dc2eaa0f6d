"""
Table-oriented data access.

DataStore wraps an AsyncSession with the small CRUD surface the services
need: equality filters, ordering, single-row fetch and single-record writes.
Each successful write commits and then publishes a ChangeEvent, which is
how admin views and caches learn about changes.

SQLAlchemy errors are translated here, and only here, into
PersistenceError (writes) and FetchError (reads).
"""

import logging
from typing import Any, Iterable, Optional, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import FetchError, NotFoundError, PersistenceError
from storefront.services.realtime import BaseChangeNotifier, ChangeEvent, ChangeEventType

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class DataStore:
    """CRUD + filter + change-notify over one database session."""

    def __init__(self, session: AsyncSession, notifier: BaseChangeNotifier):
        self.session = session
        self.notifier = notifier

    # =========================================================================
    # READS
    # =========================================================================

    async def fetch_all(
        self,
        model: type[ModelT],
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[ModelT]:
        query = select(model)
        for column, value in (filters or {}).items():
            query = query.where(getattr(model, column) == value)
        if order_by:
            column = getattr(model, order_by)
            query = query.order_by(column.desc() if descending else column.asc())
        if limit:
            query = query.limit(limit)

        try:
            result = await self.session.execute(query.execution_options(populate_existing=True))
        except SQLAlchemyError as e:
            logger.error(f"Fetch from {model.__tablename__} failed: {e}")
            raise FetchError(f"Could not load {model.__tablename__}") from e
        return list(result.scalars().all())

    async def fetch_one(self, model: type[ModelT], record_id: Any) -> Optional[ModelT]:
        try:
            return await self.session.get(model, record_id, populate_existing=True)
        except SQLAlchemyError as e:
            logger.error(f"Fetch {model.__tablename__} {record_id} failed: {e}")
            raise FetchError(f"Could not load {model.__tablename__}") from e

    async def fetch_first(self, model: type[ModelT]) -> Optional[ModelT]:
        rows = await self.fetch_all(model, limit=1)
        return rows[0] if rows else None

    async def get_or_404(self, model: type[ModelT], record_id: Any) -> ModelT:
        obj = await self.fetch_one(model, record_id)
        if obj is None:
            raise NotFoundError(f"{model.__name__} {record_id} not found")
        return obj

    # =========================================================================
    # WRITES
    # =========================================================================

    async def insert(
        self, model: type[ModelT], values: dict[str, Any], notify: bool = True
    ) -> ModelT:
        """Commit one row. With notify=False the caller must announce() it."""
        obj = model(**values)
        self.session.add(obj)
        await self._commit(model.__tablename__, "insert")
        await self.session.refresh(obj)
        if notify:
            await self.announce(model, ChangeEventType.INSERT, obj.id)
        return obj

    async def insert_many(
        self, model: type[ModelT], rows: Iterable[dict[str, Any]]
    ) -> list[ModelT]:
        objs = [model(**values) for values in rows]
        self.session.add_all(objs)
        await self._commit(model.__tablename__, "insert")
        for obj in objs:
            await self.announce(model, ChangeEventType.INSERT, obj.id)
        return objs

    async def update(
        self, model: type[ModelT], record_id: Any, values: dict[str, Any]
    ) -> ModelT:
        obj = await self.get_or_404(model, record_id)
        for column, value in values.items():
            setattr(obj, column, value)
        await self._commit(model.__tablename__, "update")
        await self.session.refresh(obj)
        await self.announce(model, ChangeEventType.UPDATE, obj.id)
        return obj

    async def delete(self, model: type[ModelT], record_id: Any) -> None:
        obj = await self.get_or_404(model, record_id)
        await self.session.delete(obj)
        await self._commit(model.__tablename__, "delete")
        await self.announce(model, ChangeEventType.DELETE, record_id)

    async def toggle(self, model: type[ModelT], record_id: Any, field: str) -> ModelT:
        obj = await self.get_or_404(model, record_id)
        return await self.update(model, record_id, {field: not getattr(obj, field)})

    # =========================================================================
    # TRANSACTION HELPERS
    # =========================================================================

    def stage(self, model: type[ModelT], rows: Sequence[dict[str, Any]]) -> list[ModelT]:
        """Add rows to the session without committing."""
        objs = [model(**values) for values in rows]
        self.session.add_all(objs)
        return objs

    async def flush(self, model: type) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Flush of {model.__tablename__} failed: {e}")
            raise PersistenceError(f"Could not save {model.__tablename__}") from e

    async def commit_staged(self, objs: Sequence[Any]) -> None:
        """Commit everything staged and announce one INSERT per object."""
        tables = sorted({type(obj).__tablename__ for obj in objs})
        await self._commit(", ".join(tables) or "records", "insert")
        for obj in objs:
            await self.announce(type(obj), ChangeEventType.INSERT, obj.id)

    async def _commit(self, table: str, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to {action} {table}: {e}")
            raise PersistenceError(f"Could not {action} {table}") from e

    async def announce(self, model: type, event: ChangeEventType, record_id: Any) -> None:
        await self.notifier.publish(
            ChangeEvent(
                table=model.__tablename__,
                event=event,
                record_id=str(record_id) if record_id is not None else None,
            )
        )
