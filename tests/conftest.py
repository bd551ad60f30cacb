"""Shared fixtures: in-memory store, change feed and notification sink."""

from decimal import Decimal

import pytest

from dinein.schemas import MenuItem
from dinein.seed import seed_demo_menu
from dinein.services.notifications import MockNotificationSink
from dinein.services.realtime import MemoryChangeFeed
from dinein.services.store import MockDataStore


def make_item(item_id: str, price, offer_price=None, has_offer: bool = False, **extra) -> MenuItem:
    return MenuItem(
        id=item_id,
        category_id=extra.pop("category_id", "cat-grills"),
        name=extra.pop("name", item_id.title()),
        price=Decimal(str(price)),
        offer_price=Decimal(str(offer_price)) if offer_price is not None else None,
        has_offer=has_offer,
        **extra,
    )


@pytest.fixture
def item_a() -> MenuItem:
    """Plain dish at 5000."""
    return make_item("item-a", 5000, name="Grilled Fish")


@pytest.fixture
def item_b() -> MenuItem:
    """4000 dish on offer for 3000."""
    return make_item("item-b", 4000, offer_price=3000, has_offer=True, name="Chicken Shawarma")


@pytest.fixture
def feed() -> MemoryChangeFeed:
    return MemoryChangeFeed()


@pytest.fixture
async def store(feed, item_a, item_b) -> MockDataStore:
    store = MockDataStore(feed=feed)
    await seed_demo_menu(store)
    await store.insert_many("menu_items", [
        item_a.model_dump(exclude={"images"}),
        item_b.model_dump(exclude={"images"}),
    ])
    return store


@pytest.fixture
def sink() -> MockNotificationSink:
    return MockNotificationSink(permission=True)
