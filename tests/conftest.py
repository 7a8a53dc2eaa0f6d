"""
Shared fixtures.

Every test gets its own SQLite file, an in-memory change notifier and a
DataStore bound to both. API tests drive the FastAPI app through httpx with
the database, notifier, cache, cart registry and admin feed overridden.
"""

import os

os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./storefront-test.db"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["TIMEZONE"] = "UTC"

from datetime import time  # noqa: E402
from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from storefront.database import build_engine, build_session_maker, get_db, init_db  # noqa: E402
from storefront.dependencies import get_cache, get_feed, get_notifier, get_registry  # noqa: E402
from storefront.models import MenuCategory, MenuItem  # noqa: E402
from storefront.services.admin_feed import AdminOrderFeed  # noqa: E402
from storefront.services.cache import QueryCache  # noqa: E402
from storefront.services.cart import CartMenuItem, CartRegistry, CartStore  # noqa: E402
from storefront.services.realtime import InMemoryChangeNotifier  # noqa: E402
from storefront.store import DataStore  # noqa: E402

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}
SESSION_HEADERS = {"X-Session-Id": "session-0001"}

VALID_CONTACT = {
    "customer_name": "Matti Meikäläinen",
    "customer_phone": "040 123 4567",
    "customer_email": "matti@example.com",
    "special_instructions": "Extra napkins",
}


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def notifier():
    return InMemoryChangeNotifier()


@pytest.fixture
def store(session, notifier):
    return DataStore(session, notifier)


@pytest.fixture
async def category(store):
    return await store.insert(MenuCategory, {"name": "Pizzat", "name_en": "Pizzas", "display_order": 1})


@pytest.fixture
async def menu_items(store, category):
    margherita = await store.insert(MenuItem, {
        "category_id": category.id,
        "name": "Margherita",
        "price": Decimal("11.50"),
        "display_order": 1,
    })
    kebab = await store.insert(MenuItem, {
        "category_id": category.id,
        "name": "Kebab Pizza",
        "price": Decimal("13.90"),
        "display_order": 2,
    })
    return margherita, kebab


@pytest.fixture
def cart(menu_items):
    margherita, kebab = menu_items
    cart = CartStore()
    cart.add_item(CartMenuItem.from_model(margherita), 2, "No basil")
    cart.add_item(CartMenuItem.from_model(kebab), 1)
    return cart


@pytest.fixture
def week_hours():
    return [
        {"day_of_week": day, "open_time": time(10, 0), "close_time": time(21, 0), "is_closed": False}
        for day in range(7)
    ]


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def query_cache(notifier):
    cache = QueryCache()
    cache.attach(notifier)
    yield cache
    cache.detach(notifier)


@pytest.fixture
def admin_feed(session_maker, notifier):
    feed = AdminOrderFeed(session_maker, notifier, limit=20)
    feed.start()
    yield feed
    feed.stop()


@pytest.fixture
def app(session_maker, notifier, query_cache, admin_feed):
    from storefront.main import app

    async def override_db():
        async with session_maker() as session:
            yield session

    registry = CartRegistry()
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_cache] = lambda: query_cache
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_feed] = lambda: admin_feed
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
