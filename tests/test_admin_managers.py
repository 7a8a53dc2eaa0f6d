import typing
import uuid
from datetime import time
from decimal import Decimal

import pytest

from storefront.core.errors import HoursPersistenceError, NotFoundError, PersistenceError
from storefront.models import MenuItem, OpeningHours
from storefront.services.admin import (
    BusinessSettingsManager,
    CrudManager,
    DayHours,
    DealManager,
    HoursManager,
    MenuCategoryManager,
    MenuItemManager,
    ReviewManager,
)
from storefront.services.cache import QueryCache


# =============================================================================
# SINGLE-TABLE MANAGERS
# =============================================================================

def test_manager_list_annotations_resolve():
    list_hints = typing.get_type_hints(CrudManager.list)
    assert typing.get_origin(list_hints["return"]) is list

    week_hints = typing.get_type_hints(HoursManager.save_week)
    assert typing.get_origin(week_hints["return"]) is list
    assert typing.get_args(week_hints["return"]) == (OpeningHours,)


async def test_categories_listed_in_display_order(store):
    manager = MenuCategoryManager(store)
    await manager.create({"name": "Juomat", "display_order": 3})
    await manager.create({"name": "Pizzat", "display_order": 1})
    await manager.create({"name": "Kebabit", "display_order": 2})

    assert [c.name for c in await manager.list()] == ["Pizzat", "Kebabit", "Juomat"]


async def test_menu_item_crud(store, category, notifier):
    manager = MenuItemManager(store)
    item = await manager.create({
        "category_id": category.id,
        "name": "Quattro Stagioni",
        "price": Decimal("12.90"),
    })
    assert item.is_available

    updated = await manager.update(item.id, {"price": Decimal("13.50")})
    assert updated.price == Decimal("13.50")
    assert updated.name == "Quattro Stagioni"

    await manager.delete(item.id)
    assert await store.fetch_one(MenuItem, item.id) is None

    events = [(c.table, c.event.value) for c in notifier.published if c.table == "menu_items"]
    assert events == [("menu_items", "INSERT"), ("menu_items", "UPDATE"), ("menu_items", "DELETE")]


async def test_menu_item_requires_existing_category(store):
    with pytest.raises(NotFoundError):
        await MenuItemManager(store).create({
            "category_id": uuid.uuid4(),
            "name": "Ghost",
            "price": Decimal("1.00"),
        })


async def test_toggle_availability_hides_item_from_public_list(store, menu_items):
    margherita, kebab = menu_items
    manager = MenuItemManager(store)

    toggled = await manager.toggle(margherita.id)
    assert toggled.is_available is False
    assert [i.name for i in await manager.list_public()] == ["Kebab Pizza"]
    assert len(await manager.list()) == 2

    assert (await manager.toggle(margherita.id)).is_available is True


async def test_categories_have_no_toggle(store, category):
    with pytest.raises(NotImplementedError):
        await MenuCategoryManager(store).toggle(category.id)


async def test_deal_toggle_and_menu_item_check(store, menu_items):
    manager = DealManager(store)
    deal = await manager.create({
        "title": "Lounas",
        "discount_percentage": 15,
        "menu_item_id": menu_items[0].id,
    })
    assert deal.is_active

    await manager.toggle(deal.id)
    assert await manager.list_public() == []

    with pytest.raises(NotFoundError):
        await manager.create({"title": "Broken", "menu_item_id": uuid.uuid4()})


async def test_reviews_visibility(store):
    manager = ReviewManager(store)
    review = await manager.create({"author_name": "Anna", "rating": 5, "text": "Paras pizza!"})
    await manager.create({"author_name": "Pekka", "rating": 4})

    await manager.toggle(review.id)
    assert [r.author_name for r in await manager.list_public()] == ["Pekka"]


async def test_update_missing_record(store):
    with pytest.raises(NotFoundError):
        await ReviewManager(store).update(uuid.uuid4(), {"rating": 1})


# =============================================================================
# OPENING HOURS
# =============================================================================

async def test_save_week_creates_every_day(store):
    manager = HoursManager(store)
    saved = await manager.save_week([DayHours(1, time(11, 0), time(20, 0))])

    assert [h.day_of_week for h in saved] == list(range(7))
    monday = saved[1]
    assert monday.open_time == time(11, 0)
    assert monday.close_time == time(20, 0)
    assert saved[0].open_time == time(10, 0)


async def test_save_week_updates_existing_rows(store, week_hours):
    for values in week_hours:
        await store.insert(OpeningHours, values)

    manager = HoursManager(store)
    saved = await manager.save_week([DayHours(0, time(12, 0), time(18, 0), is_closed=True)])

    assert len(await store.fetch_all(OpeningHours)) == 7
    assert saved[0].is_closed
    assert saved[0].open_time == time(12, 0)
    assert saved[3].open_time == time(10, 0)


async def test_save_week_partial_failure_keeps_earlier_days(store, monkeypatch):
    manager = HoursManager(store)
    original_insert = store.insert

    async def failing_insert(model, values):
        if values["day_of_week"] == 3:
            raise PersistenceError("disk full")
        return await original_insert(model, values)

    monkeypatch.setattr(store, "insert", failing_insert)

    with pytest.raises(HoursPersistenceError) as exc_info:
        await manager.save_week([DayHours(day, time(9, 0), time(17, 0)) for day in range(7)])

    assert exc_info.value.failed_day == 3
    assert exc_info.value.saved_days == [0, 1, 2]
    assert [h.day_of_week for h in await manager.list()] == [0, 1, 2]


# =============================================================================
# BUSINESS SETTINGS
# =============================================================================

async def test_business_settings_single_row(store):
    manager = BusinessSettingsManager(store)
    assert await manager.get() is None

    created = await manager.save({"name": "Pizzeria Napoli", "phone": "040 111 2222"})
    updated = await manager.save({"name": "Pizzeria Napoli", "google_rating": Decimal("4.7")})

    assert updated.id == created.id
    assert updated.google_rating == Decimal("4.7")
    assert (await manager.get()).name == "Pizzeria Napoli"


# =============================================================================
# CACHE INVALIDATION
# =============================================================================

async def test_write_invalidates_cached_list(store, notifier, menu_items):
    cache = QueryCache()
    cache.attach(notifier)
    manager = MenuItemManager(store)

    async def load():
        return [i.name for i in await manager.list_public()]

    assert await cache.get_or_load("menu_items", "public", load) == ["Margherita", "Kebab Pizza"]
    assert cache.is_cached("menu_items", "public")

    await manager.toggle(menu_items[1].id)
    assert not cache.is_cached("menu_items", "public")
    assert await cache.get_or_load("menu_items", "public", load) == ["Margherita"]

    await ReviewManager(store).create({"author_name": "Anna"})
    assert cache.is_cached("menu_items", "public")
