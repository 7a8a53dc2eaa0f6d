import asyncio
import json

from redis.exceptions import ConnectionError as RedisConnectionError

from storefront.core.errors import FetchError
from storefront.services.admin_feed import AdminOrderFeed
from storefront.services.orders import OrderStatusService, OrderSubmissionFlow
from storefront.services.realtime import (
    ChangeEvent,
    ChangeEventType,
    InMemoryChangeNotifier,
    RedisChangeNotifier,
)

from tests.conftest import VALID_CONTACT


# =============================================================================
# NOTIFIER
# =============================================================================

async def test_subscribers_filtered_by_table_and_event():
    notifier = InMemoryChangeNotifier()
    seen = {"orders": [], "inserts": [], "everything": []}

    notifier.subscribe("orders", "*", seen["orders"].append)
    notifier.subscribe("*", ChangeEventType.INSERT, seen["inserts"].append)

    async def record(change):
        seen["everything"].append(change)

    notifier.subscribe("*", "*", record)

    await notifier.publish(ChangeEvent("orders", ChangeEventType.UPDATE, "1"))
    await notifier.publish(ChangeEvent("menu_items", ChangeEventType.INSERT, "2"))

    assert [c.record_id for c in seen["orders"]] == ["1"]
    assert [c.record_id for c in seen["inserts"]] == ["2"]
    assert [c.record_id for c in seen["everything"]] == ["1", "2"]


async def test_failing_subscriber_does_not_block_others():
    notifier = InMemoryChangeNotifier()
    received = []

    def broken(change):
        raise RuntimeError("boom")

    notifier.subscribe("orders", "*", broken)
    notifier.subscribe("orders", "*", received.append)

    await notifier.publish(ChangeEvent("orders", ChangeEventType.INSERT, "1"))
    assert len(received) == 1


async def test_unsubscribe_stops_delivery():
    notifier = InMemoryChangeNotifier()
    received = []
    subscription = notifier.subscribe("orders", "*", received.append)
    notifier.unsubscribe(subscription)

    await notifier.publish(ChangeEvent("orders", ChangeEventType.INSERT, "1"))
    assert received == []
    assert notifier.subscriber_count == 0


def test_change_event_wire_format():
    change = ChangeEvent("orders", ChangeEventType.DELETE, "abc")
    data = json.loads(json.dumps(change.to_dict()))
    assert data["event"] == "DELETE"
    assert ChangeEvent.from_dict(data) == change


class UnreachableRedis:
    async def publish(self, channel, message):
        raise RedisConnectionError("connection refused")

    async def ping(self):
        raise RedisConnectionError("connection refused")


async def test_redis_outage_falls_back_to_local_dispatch():
    notifier = RedisChangeNotifier(redis_url="redis://localhost:1/0", channel_prefix="test")
    notifier._client = UnreachableRedis()
    received = []
    notifier.subscribe("orders", "*", received.append)

    await notifier.publish(ChangeEvent("orders", ChangeEventType.INSERT, "1"))

    assert len(received) == 1
    assert await notifier.health_check() is False
    assert notifier.channel_for("orders") == "test:orders"


class DroppingPubSub:
    """Subscribes fine, then loses the connection on the first read."""

    def __init__(self):
        self.closed = False

    async def psubscribe(self, pattern):
        self.pattern = pattern

    async def listen(self):
        raise RedisConnectionError("connection reset by peer")
        yield  # pragma: no cover

    async def aclose(self):
        self.closed = True


class DeliveringPubSub(DroppingPubSub):
    def __init__(self, messages):
        super().__init__()
        self.messages = messages

    async def listen(self):
        for message in self.messages:
            yield message
        await asyncio.Event().wait()


class ReconnectingRedis:
    def __init__(self, *pubsubs):
        self.pubsubs = list(pubsubs)
        self.handed_out = []

    def pubsub(self):
        pubsub = self.pubsubs.pop(0)
        self.handed_out.append(pubsub)
        return pubsub

    async def aclose(self):
        pass


async def test_redis_listener_resubscribes_after_connection_loss():
    change = ChangeEvent("orders", ChangeEventType.INSERT, "42")
    fake = ReconnectingRedis(
        DroppingPubSub(),
        DeliveringPubSub([
            {"type": "psubscribe", "data": 1},
            {"type": "pmessage", "data": "not json"},
            {"type": "pmessage", "data": json.dumps(change.to_dict())},
        ]),
    )
    notifier = RedisChangeNotifier(
        redis_url="redis://localhost:1/0", channel_prefix="test", reconnect_delay=0.01
    )
    notifier._client = fake
    delivered = asyncio.Event()
    received = []

    def on_change(event):
        received.append(event)
        delivered.set()

    notifier.subscribe("orders", "*", on_change)
    await notifier.start()
    await asyncio.wait_for(delivered.wait(), timeout=5)
    await notifier.stop()

    assert received == [change]
    assert len(fake.handed_out) == 2
    assert all(p.pattern == "test:*" for p in fake.handed_out)
    assert all(p.closed for p in fake.handed_out)


# =============================================================================
# ADMIN ORDER FEED
# =============================================================================

async def test_order_change_pushes_fresh_list_with_alert(store, cart, admin_feed):
    payloads = []

    async def listener(payload):
        payloads.append(payload)

    admin_feed.add_listener(listener)
    order = await OrderSubmissionFlow(store).submit(cart, VALID_CONTACT)
    await admin_feed.flush()

    assert len(payloads) == 1
    first = payloads[0]
    assert first["type"] == "orders"
    assert first["alert"] is True
    assert first["event"]["table"] == "orders"
    assert [o["id"] for o in first["orders"]] == [str(order.id)]
    assert first["orders"][0]["available_actions"] == ["accept", "reject"]
    assert [i["item_name"] for i in first["orders"][0]["items"]] == ["Margherita", "Kebab Pizza"]

    await OrderStatusService(store).apply_action(order.id, "accept")
    await admin_feed.flush()
    latest = payloads[-1]
    assert latest["orders"][0]["status"] == "confirmed"
    assert latest["orders"][0]["available_actions"] == ["start_preparing"]
    assert len(latest["orders"][0]["items"]) == 2


async def test_two_phase_order_alert_carries_lines(store, cart, admin_feed):
    payloads = []

    async def listener(payload):
        payloads.append(payload)

    admin_feed.add_listener(listener)
    order = await OrderSubmissionFlow(store, atomic=False).submit(cart, VALID_CONTACT)
    await admin_feed.flush()

    assert [p["event"]["record_id"] for p in payloads] == [str(order.id)]
    assert len(payloads[0]["orders"][0]["items"]) == 2


async def test_slow_console_does_not_hold_up_checkout(store, cart, admin_feed):
    release = asyncio.Event()
    payloads = []

    async def slow_listener(payload):
        await release.wait()
        payloads.append(payload)

    admin_feed.add_listener(slow_listener)
    order = await asyncio.wait_for(OrderSubmissionFlow(store).submit(cart, VALID_CONTACT), timeout=5)

    assert order.id is not None
    assert payloads == []

    release.set()
    await admin_feed.flush()
    assert [o["id"] for o in payloads[0]["orders"]] == [str(order.id)]


async def test_feed_ignores_other_tables(store, admin_feed, menu_items):
    payloads = []

    async def listener(payload):
        payloads.append(payload)

    admin_feed.add_listener(listener)
    await store.update(type(menu_items[0]), menu_items[0].id, {"is_popular": True})
    await admin_feed.flush()
    assert payloads == []


async def test_failed_refetch_keeps_previous_snapshot(store, cart, admin_feed, monkeypatch):
    await OrderSubmissionFlow(store).submit(cart, VALID_CONTACT)
    await admin_feed.flush()
    snapshot = list(admin_feed.snapshot)
    payloads = []

    async def listener(payload):
        payloads.append(payload)

    async def failing_refresh():
        raise FetchError("database unavailable")

    admin_feed.add_listener(listener)
    monkeypatch.setattr(admin_feed, "refresh", failing_refresh)
    await admin_feed.notifier.publish(ChangeEvent("orders", ChangeEventType.UPDATE, "x"))
    await admin_feed.flush()

    assert payloads == []
    assert admin_feed.snapshot == snapshot


async def test_broken_listener_is_dropped(store, cart, admin_feed):
    async def broken(payload):
        raise RuntimeError("socket closed")

    admin_feed.add_listener(broken)
    assert admin_feed.listener_count == 1

    await OrderSubmissionFlow(store).submit(cart, VALID_CONTACT)
    await admin_feed.flush()
    assert admin_feed.listener_count == 0


async def test_stopped_feed_no_longer_listens(notifier, session_maker):
    feed = AdminOrderFeed(session_maker, notifier)
    feed.start()
    feed.start()
    assert notifier.subscriber_count == 1
    feed.stop()
    assert notifier.subscriber_count == 0
