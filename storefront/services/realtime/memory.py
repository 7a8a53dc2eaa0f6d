"""
In-Memory Change Notifier

Delivers change events to subscribers in the same process.
Used in development and in tests.
"""

import logging
from collections import deque

from storefront.services.realtime.base import BaseChangeNotifier, ChangeEvent

logger = logging.getLogger(__name__)


class InMemoryChangeNotifier(BaseChangeNotifier):
    """Single-process notifier; publish awaits every matching callback."""

    def __init__(self):
        super().__init__()
        self.published: deque[ChangeEvent] = deque(maxlen=1000)
        logger.info("InMemoryChangeNotifier initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    async def publish(self, change: ChangeEvent) -> None:
        self.published.append(change)
        logger.debug(f"Change published: {change.table}:{change.event.value} {change.record_id}")
        await self._dispatch(change)
