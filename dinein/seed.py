"""
Demo Menu

Small menu loaded into the in-memory store in development so the
storefront and simulation script have something to order.
"""

import logging
from decimal import Decimal

from dinein.services.store.base import BaseDataStore

logger = logging.getLogger(__name__)

DEMO_CATEGORIES = [
    {"id": "cat-grills", "name": "Grills", "sort_order": 1},
    {"id": "cat-sides", "name": "Sides", "sort_order": 2},
    {"id": "cat-drinks", "name": "Drinks", "sort_order": 3},
]

DEMO_ITEMS = [
    {
        "id": "item-kebab",
        "category_id": "cat-grills",
        "name": "Lamb Kebab",
        "ingredients": "Lamb, onion, sumac",
        "price": Decimal("5000"),
        "has_offer": True,
        "offer_price": Decimal("4000"),
        "is_featured": True,
        "sort_order": 1,
    },
    {
        "id": "item-tikka",
        "category_id": "cat-grills",
        "name": "Chicken Tikka",
        "price": Decimal("6000"),
        "sort_order": 2,
    },
    {
        "id": "item-rice",
        "category_id": "cat-sides",
        "name": "Saffron Rice",
        "price": Decimal("1500"),
        "sort_order": 1,
    },
    {
        "id": "item-salad",
        "category_id": "cat-sides",
        "name": "Fattoush Salad",
        "price": Decimal("2500"),
        "sort_order": 2,
    },
    {
        "id": "item-tea",
        "category_id": "cat-drinks",
        "name": "Black Tea",
        "price": Decimal("500"),
        "sort_order": 1,
    },
]

DEMO_IMAGES = [
    {"menu_item_id": "item-kebab", "image_url": "/images/kebab.jpg", "is_primary": True, "sort_order": 1},
    {"menu_item_id": "item-kebab", "image_url": "/images/kebab-plate.jpg", "sort_order": 2},
]


async def seed_demo_menu(store: BaseDataStore, restaurant_name: str = "Dine-in Restaurant") -> None:
    """Load the demo menu unless the store already has categories."""
    if await store.count("categories"):
        logger.info("Menu already present, demo seed skipped")
        return

    await store.insert_many("categories", DEMO_CATEGORIES)
    await store.insert_many("menu_items", DEMO_ITEMS)
    await store.insert_many("item_images", DEMO_IMAGES)
    await store.insert("settings", {"restaurant_name": restaurant_name, "working_hours": "12:00 - 23:00"})
    logger.info(f"Demo menu seeded: {len(DEMO_CATEGORIES)} categories, {len(DEMO_ITEMS)} items")
