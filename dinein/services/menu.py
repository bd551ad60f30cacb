"""
Menu Catalog

Read side of the menu for the storefront: active categories, active
items with their images, and the restaurant settings row.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional

from dinein.core.exceptions import OrderPersistenceError, StoreError
from dinein.schemas import Category, ItemImage, MenuItem, RestaurantSettings
from dinein.services.store.base import BaseDataStore

logger = logging.getLogger(__name__)


class MenuCatalog:

    def __init__(self, store: BaseDataStore):
        self.store = store

    async def categories(self, active_only: bool = True) -> list[Category]:
        filters = {"is_active": True} if active_only else None
        try:
            rows = await self.store.select("categories", filters, order_by="sort_order")
        except StoreError as e:
            raise OrderPersistenceError("Could not load categories", detail=str(e)) from e
        return [Category.model_validate(row) for row in rows]

    async def items(self, active_only: bool = True, category_id: Optional[str] = None) -> list[MenuItem]:
        filters = {}
        if active_only:
            filters["is_active"] = True
        if category_id:
            filters["category_id"] = category_id

        try:
            rows = await self.store.select("menu_items", filters, order_by="sort_order")
            images = await self._images_for(row["id"] for row in rows)
        except StoreError as e:
            raise OrderPersistenceError("Could not load menu items", detail=str(e)) from e

        return [MenuItem.model_validate({**row, "images": images[row["id"]]}) for row in rows]

    async def items_by_id(self, item_ids: Iterable[str]) -> dict[str, MenuItem]:
        """Current state of the given items, active or not."""
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return {}

        try:
            rows = await self.store.select("menu_items", {"id__in": ids})
            images = await self._images_for(ids)
        except StoreError as e:
            raise OrderPersistenceError("Could not load menu items", detail=str(e)) from e

        return {
            row["id"]: MenuItem.model_validate({**row, "images": images[row["id"]]})
            for row in rows
        }

    async def settings(self) -> Optional[RestaurantSettings]:
        try:
            row = await self.store.select_one("settings")
        except StoreError as e:
            raise OrderPersistenceError("Could not load settings", detail=str(e)) from e
        return RestaurantSettings.model_validate(row) if row else None

    async def _images_for(self, item_ids: Iterable[str]) -> dict[str, list[ItemImage]]:
        ids = list(item_ids)
        grouped: dict[str, list[ItemImage]] = defaultdict(list)
        if not ids:
            return grouped

        rows = await self.store.select("item_images", {"menu_item_id__in": ids}, order_by="sort_order")
        for row in rows:
            grouped[row["menu_item_id"]].append(ItemImage.model_validate(row))
        return grouped
