"""
Query cache for public read endpoints.

Results are cached per table and dropped whenever a change event arrives
for that table, so the next read goes back to the database.
"""

import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable, Hashable, Optional

from storefront.services.realtime import BaseChangeNotifier, ChangeEvent, Subscription

logger = logging.getLogger(__name__)


class QueryCache:
    def __init__(self):
        self._entries: dict[str, dict[Hashable, Any]] = {}
        self._subscription: Optional[Subscription] = None

    async def get_or_load(
        self,
        table: str,
        key: Hashable,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        entries = self._entries.setdefault(table, {})
        if key in entries:
            return entries[key]
        value = await loader()
        entries[key] = value
        return value

    def invalidate(self, table: str) -> None:
        if self._entries.pop(table, None) is not None:
            logger.debug(f"Cache invalidated for {table}")

    def clear(self) -> None:
        self._entries.clear()

    def is_cached(self, table: str, key: Hashable) -> bool:
        return key in self._entries.get(table, {})

    def attach(self, notifier: BaseChangeNotifier) -> None:
        """Invalidate on every change event the notifier delivers."""
        if self._subscription is None:
            self._subscription = notifier.subscribe("*", "*", self._on_change)

    def detach(self, notifier: BaseChangeNotifier) -> None:
        if self._subscription is not None:
            notifier.unsubscribe(self._subscription)
            self._subscription = None

    def _on_change(self, change: ChangeEvent) -> None:
        self.invalidate(change.table)


@lru_cache()
def get_query_cache() -> QueryCache:
    return QueryCache()
