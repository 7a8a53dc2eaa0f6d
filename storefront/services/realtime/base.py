"""
Change Notifier Abstract Base Class

Defines the publish/subscribe contract for row-level change events.
Writes publish a ChangeEvent after they commit; subscribers register a
callback for a table and an event type ("*" matches every type).

Implementations:
    - InMemoryChangeNotifier: single-process fan-out (development, tests)
    - RedisChangeNotifier: fan-out across processes over Redis pub/sub
"""

import inspect
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


class ChangeEventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ALL = "*"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one row."""
    table: str
    event: ChangeEventType
    record_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "event": self.event.value,
            "record_id": self.record_id,
            "occurred_at": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChangeEvent":
        return cls(
            table=data["table"],
            event=ChangeEventType(data["event"]),
            record_id=data.get("record_id"),
            occurred_at=datetime.fromisoformat(data["occurred_at"]),
        )


ChangeCallback = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


@dataclass
class Subscription:
    table: str
    event: ChangeEventType
    callback: ChangeCallback
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def matches(self, change: ChangeEvent) -> bool:
        if self.table != "*" and self.table != change.table:
            return False
        return self.event == ChangeEventType.ALL or self.event == change.event


class BaseChangeNotifier(ABC):
    """Abstract base class for change notifiers."""

    def __init__(self):
        self._subscriptions: dict[str, Subscription] = {}

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def publish(self, change: ChangeEvent) -> None:
        """Announce a committed change to every matching subscriber."""
        pass

    async def start(self) -> None:
        """Open any background resources. No-op by default."""

    async def stop(self) -> None:
        """Release background resources. No-op by default."""

    async def health_check(self) -> bool:
        return True

    def subscribe(
        self,
        table: str,
        event: Union[ChangeEventType, str],
        callback: ChangeCallback,
    ) -> Subscription:
        """
        Register a callback for changes on a table.

        Args:
            table: Table name, or "*" for every table
            event: INSERT, UPDATE, DELETE or "*"
            callback: Plain or async callable receiving the ChangeEvent

        Returns:
            Subscription handle to pass to unsubscribe()
        """
        subscription = Subscription(
            table=table,
            event=ChangeEventType(event),
            callback=callback,
        )
        self._subscriptions[subscription.id] = subscription
        logger.debug(f"Subscribed {subscription.id} to {table}:{subscription.event.value}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def _dispatch(self, change: ChangeEvent) -> None:
        """
        Run matching callbacks in registration order.

        A failing subscriber is logged and does not stop the others.
        """
        for subscription in list(self._subscriptions.values()):
            if not subscription.matches(change):
                continue
            try:
                result = subscription.callback(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    f"Subscriber {subscription.id} failed on "
                    f"{change.table}:{change.event.value}"
                )
