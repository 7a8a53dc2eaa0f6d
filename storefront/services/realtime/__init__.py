"""
Change Notifier Factory

Returns the in-memory or Redis notifier based on ENV_MODE.

Environment Switching:
    - ENV_MODE=development → InMemoryChangeNotifier
    - ENV_MODE=staging / production → RedisChangeNotifier
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.realtime.base import (
    BaseChangeNotifier,
    ChangeCallback,
    ChangeEvent,
    ChangeEventType,
    Subscription,
)
from storefront.services.realtime.memory import InMemoryChangeNotifier
from storefront.services.realtime.redis import RedisChangeNotifier

logger = logging.getLogger(__name__)


@lru_cache()
def get_change_notifier() -> BaseChangeNotifier:
    """Get the configured change notifier (one per process)."""
    settings = get_settings()

    if settings.use_redis_notifier:
        logger.info(f"Change Notifier: Using RedisChangeNotifier ({settings.env_mode.value} mode)")
        return RedisChangeNotifier()

    logger.info("Change Notifier: Using InMemoryChangeNotifier (development mode)")
    return InMemoryChangeNotifier()


def reset_change_notifier() -> None:
    """Clear the cached notifier instance."""
    get_change_notifier.cache_clear()


__all__ = [
    "get_change_notifier",
    "reset_change_notifier",
    "BaseChangeNotifier",
    "ChangeCallback",
    "ChangeEvent",
    "ChangeEventType",
    "Subscription",
    "InMemoryChangeNotifier",
    "RedisChangeNotifier",
]
