"""
Redis Change Notifier

Production implementation: change events are published to Redis pub/sub
channels named "<prefix>:<table>" and every API process listens on
"<prefix>:*", dispatching to its local subscribers. A process therefore
receives its own events back through Redis, so admin views attached to any
worker see every change.
"""

import asyncio
import json
import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from storefront.core.config import get_settings
from storefront.services.realtime.base import BaseChangeNotifier, ChangeEvent

logger = logging.getLogger(__name__)
settings = get_settings()


class RedisChangeNotifier(BaseChangeNotifier):
    """Notifier backed by Redis pub/sub."""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        channel_prefix: Optional[str] = None,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
    ):
        super().__init__()
        self.redis_url = redis_url or settings.redis_url
        self.channel_prefix = channel_prefix or settings.change_channel_prefix
        self._client: Optional[aioredis.Redis] = None
        self._listener: Optional[asyncio.Task] = None
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        logger.info(f"RedisChangeNotifier initialized (prefix={self.channel_prefix})")

    @property
    def provider_name(self) -> str:
        return "redis"

    @property
    def client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(self.redis_url, decode_responses=True)
        return self._client

    def channel_for(self, table: str) -> str:
        return f"{self.channel_prefix}:{table}"

    async def publish(self, change: ChangeEvent) -> None:
        """
        Publish a change to Redis.

        A Redis outage must not fail the write that already committed, so
        the error is logged and the event is dispatched locally instead.
        """
        try:
            await self.client.publish(
                self.channel_for(change.table),
                json.dumps(change.to_dict()),
            )
        except RedisError as e:
            logger.error(f"Redis publish failed, dispatching locally: {e}")
            await self._dispatch(change)

    async def start(self) -> None:
        if self._listener is None:
            self._listener = asyncio.create_task(self._listen())
            logger.info("Redis change listener started")

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("Redis change listener stopped")

    async def _listen(self) -> None:
        """Listen until cancelled, resubscribing with backoff after Redis errors."""
        delay = self.reconnect_delay
        while True:
            pubsub = self.client.pubsub()
            try:
                await pubsub.psubscribe(f"{self.channel_prefix}:*")
                delay = self.reconnect_delay
                async for message in pubsub.listen():
                    await self._handle_message(message)
                logger.warning("Redis change subscription ended, resubscribing")
            except RedisError as e:
                logger.error(f"Redis change listener failed, retrying in {delay:.1f}s: {e}")
            finally:
                await pubsub.aclose()
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_reconnect_delay)

    async def _handle_message(self, message: dict) -> None:
        if message.get("type") != "pmessage":
            return
        try:
            change = ChangeEvent.from_dict(json.loads(message["data"]))
        except (ValueError, KeyError) as e:
            logger.warning(f"Ignoring malformed change message: {e}")
            return
        await self._dispatch(change)

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
