"""
Admin Order Feed

Keeps connected admin consoles current. Any change on the orders table
triggers a full re-fetch of the recent order list (no incremental merge),
and the fresh snapshot is pushed to every listener together with an alert
flag so the console can play its notification sound.

A failed re-fetch is logged and listeners keep the previous snapshot.

Pushes run as background tasks, one at a time, so the write that caused
the change returns without waiting on the re-fetch or on slow consoles.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.core.config import get_settings
from storefront.core.errors import FetchError
from storefront.database import async_session_maker
from storefront.models import Order
from storefront.schemas import AdminOrderResponse
from storefront.services.orders.status import available_actions
from storefront.services.realtime import (
    BaseChangeNotifier,
    ChangeEvent,
    Subscription,
    get_change_notifier,
)
from storefront.store import DataStore

logger = logging.getLogger(__name__)

FeedListener = Callable[[dict[str, Any]], Awaitable[None]]


def to_admin_order(order: Order) -> AdminOrderResponse:
    response = AdminOrderResponse.model_validate(order)
    response.available_actions = [a.name for a in available_actions(order.status)]
    return response


class AdminOrderFeed:
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        notifier: BaseChangeNotifier,
        limit: Optional[int] = None,
    ):
        self.session_maker = session_maker
        self.notifier = notifier
        self.limit = limit or get_settings().order_list_limit
        self.snapshot: list[dict[str, Any]] = []
        self._listeners: dict[int, FeedListener] = {}
        self._subscription: Optional[Subscription] = None
        self._push_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    def start(self) -> None:
        if self._subscription is None:
            self._subscription = self.notifier.subscribe("orders", "*", self._on_change)
            logger.info("Admin order feed subscribed to order changes")

    def stop(self) -> None:
        if self._subscription is not None:
            self.notifier.unsubscribe(self._subscription)
            self._subscription = None
        for task in list(self._pending):
            task.cancel()

    async def flush(self) -> None:
        """Wait until every scheduled push has been delivered."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def add_listener(self, listener: FeedListener) -> int:
        key = id(listener)
        self._listeners[key] = listener
        return key

    def remove_listener(self, key: int) -> None:
        self._listeners.pop(key, None)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def refresh(self) -> list[dict[str, Any]]:
        """Re-read the recent orders and replace the snapshot."""
        async with self.session_maker() as session:
            store = DataStore(session, self.notifier)
            orders = await store.fetch_all(
                Order, order_by="created_at", descending=True, limit=self.limit
            )
            self.snapshot = [to_admin_order(o).model_dump(mode="json") for o in orders]
        return self.snapshot

    async def _on_change(self, change: ChangeEvent) -> None:
        task = asyncio.create_task(self._push(change))
        self._pending.add(task)
        task.add_done_callback(self._push_done)

    def _push_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Admin feed push failed: {task.exception()!r}")

    async def _push(self, change: ChangeEvent) -> None:
        async with self._push_lock:
            try:
                await self.refresh()
            except FetchError as e:
                logger.warning(f"Order feed refresh failed, keeping previous snapshot: {e.detail}")
                return
            await self._send(change)

    async def _send(self, change: ChangeEvent) -> None:
        payload = {
            "type": "orders",
            "alert": True,
            "event": change.to_dict(),
            "orders": self.snapshot,
        }
        for key, listener in list(self._listeners.items()):
            try:
                await listener(payload)
            except Exception as e:
                logger.warning(f"Dropping admin feed listener after send failure: {e}")
                self.remove_listener(key)


@lru_cache()
def get_admin_feed() -> AdminOrderFeed:
    return AdminOrderFeed(async_session_maker, get_change_notifier())
