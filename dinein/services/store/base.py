"""
Data Store Abstract Base Class

Defines the interface of the relational data store the order services talk
to. Rows are plain dicts keyed by column name; collections are the table
names in dinein.models.

Design Pattern: Strategy Pattern
    - MockDataStore keeps everything in memory (development, tests)
    - SqlDataStore runs on SQLAlchemy (staging, production)

Filters:
    A dict keyed by column name. A key may carry an operator suffix:
        {"status": "pending"}                  equality
        {"created_at__gte": midnight}          >=
        {"created_at__lte": now}               <=
        {"order_id__in": ["a", "b"]}           membership

Ordering:
    `order_by="sort_order"` ascending, `order_by="-created_at"` descending.

Writes are published to the attached change feed after they succeed.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, TYPE_CHECKING

from dinein.models import utcnow

if TYPE_CHECKING:
    from dinein.services.realtime.base import BaseChangeFeed

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Filters = Optional[dict[str, Any]]

COLLECTIONS = (
    "categories",
    "menu_items",
    "item_images",
    "orders",
    "order_items",
    "settings",
)

# Collections that carry an updated_at column
TIMESTAMPED = {"categories", "menu_items", "orders", "settings"}

# Column defaults the models declare, applied before a row is stored
COLUMN_DEFAULTS: dict[str, dict[str, Any]] = {
    "categories": {"sort_order": 0, "is_active": True},
    "menu_items": {"has_offer": False, "is_active": True, "is_featured": False, "sort_order": 0},
    "item_images": {"is_primary": False, "sort_order": 0},
}

OPERATORS = ("eq", "gte", "lte", "in")


def parse_filters(filters: Filters) -> list[tuple[str, str, Any]]:
    """Split filter keys into (column, operator, value) triples."""
    parsed = []
    for key, value in (filters or {}).items():
        column, _, op = key.partition("__")
        op = op or "eq"
        if op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator '{op}' in '{key}'")
        parsed.append((column, op, value))
    return parsed


def parse_order_by(order_by: Optional[str]) -> tuple[Optional[str], bool]:
    """Return (column, descending)."""
    if not order_by:
        return None, False
    if order_by.startswith("-"):
        return order_by[1:], True
    return order_by, False


def with_defaults(collection: str, row: Row) -> Row:
    """Fill in the id, timestamps and column defaults the application owns."""
    prepared = {**COLUMN_DEFAULTS.get(collection, {}), **row}
    prepared.setdefault("id", str(uuid.uuid4()))
    now = utcnow()
    prepared.setdefault("created_at", now)
    if collection in TIMESTAMPED:
        prepared.setdefault("updated_at", now)
    return prepared


class BaseDataStore(ABC):
    """
    Abstract base class for data store backends.

    Every method raises dinein.core.exceptions.StoreError when the backend
    rejects the operation.
    """

    def __init__(self, feed: Optional["BaseChangeFeed"] = None):
        self.feed = feed

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def insert(self, collection: str, row: Row) -> Row:
        """Insert one row and return it as stored."""
        pass

    @abstractmethod
    async def insert_many(self, collection: str, rows: list[Row]) -> list[Row]:
        """Insert several rows in one statement; all or nothing."""
        pass

    @abstractmethod
    async def insert_related(
        self,
        parent_collection: str,
        parent_row: Row,
        child_collection: str,
        child_rows: list[Row],
        foreign_key: str,
    ) -> tuple[Row, list[Row]]:
        """
        Insert a parent row and its children as one unit.

        Each child gets `foreign_key` set to the parent's id. Either both
        sides are stored or neither is, and change events for the unit are
        published only after it is stored.
        """
        pass

    @abstractmethod
    async def update(self, collection: str, filters: Filters, values: Row) -> list[Row]:
        """Update matching rows and return their new state."""
        pass

    @abstractmethod
    async def delete(self, collection: str, filters: Filters) -> int:
        """Delete matching rows and return how many were removed."""
        pass

    @abstractmethod
    async def select(
        self,
        collection: str,
        filters: Filters = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        pass

    @abstractmethod
    async def count(self, collection: str, filters: Filters = None) -> int:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def select_one(self, collection: str, filters: Filters = None) -> Optional[Row]:
        rows = await self.select(collection, filters, limit=1)
        return rows[0] if rows else None

    async def close(self) -> None:
        """Release backend resources."""
        return None

    async def _publish(self, collection: str, event: str, rows: Iterable[Row]) -> None:
        """Forward committed writes to the change feed; feed errors never fail the write."""
        if self.feed is None:
            return
        for row in rows:
            try:
                await self.feed.publish(collection, event, row)
            except Exception as e:
                logger.warning(f"Change feed publish failed for {collection}/{event}: {e}")
