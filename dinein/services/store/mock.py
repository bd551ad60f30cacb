"""
Mock Data Store

In-memory data store for development and tests.
Rows live in per-collection dicts; every read returns copies so callers
can never mutate stored state by accident.

Failures can be injected per operation and collection to exercise the
error paths of the order services:

    store.fail_next("insert_many", "order_items")
"""

import asyncio
import copy
import logging
import random
from collections import defaultdict
from datetime import timedelta
from typing import Any, Optional

from dinein.core.exceptions import StoreError
from dinein.services.store.base import (
    BaseDataStore,
    COLLECTIONS,
    Filters,
    Row,
    parse_filters,
    parse_order_by,
    with_defaults,
)

logger = logging.getLogger(__name__)


def _matches(row: Row, conditions: list[tuple[str, str, Any]]) -> bool:
    for column, op, expected in conditions:
        actual = row.get(column)
        if op == "eq":
            if actual != expected:
                return False
        elif op == "in":
            if actual not in expected:
                return False
        elif actual is None:
            return False
        elif op == "gte" and not actual >= expected:
            return False
        elif op == "lte" and not actual <= expected:
            return False
    return True


class MockDataStore(BaseDataStore):
    """In-memory data store."""

    def __init__(
        self,
        feed=None,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        super().__init__(feed)
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self._tables: dict[str, dict[str, Row]] = {name: {} for name in COLLECTIONS}
        self._forced_failures: dict[tuple[str, str], int] = defaultdict(int)
        self._last_created = None
        logger.info(f"MockDataStore initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "memory"

    # =========================================================================
    # FAILURE INJECTION
    # =========================================================================

    def fail_next(self, operation: str, collection: str, times: int = 1) -> None:
        """Make the next `times` calls of `operation` on `collection` raise StoreError."""
        self._forced_failures[(operation, collection)] += times

    async def _before(self, operation: str, collection: str) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

        if collection not in self._tables:
            raise StoreError(operation, collection, "unknown collection")

        key = (operation, collection)
        if self._forced_failures[key] > 0:
            self._forced_failures[key] -= 1
            logger.warning(f"Mock store failure (injected): {operation} {collection}")
            raise StoreError(operation, collection, "injected failure")

        if self.failure_rate and random.random() < self.failure_rate:
            logger.warning(f"Mock store failure (simulated): {operation} {collection}")
            raise StoreError(operation, collection, "simulated failure")

    def _prepare(self, collection: str, row: Row) -> Row:
        prepared = with_defaults(collection, row)
        # Keep created_at strictly increasing so newest-first ordering is stable
        created = prepared["created_at"]
        if self._last_created is not None and created <= self._last_created:
            created = self._last_created + timedelta(microseconds=1)
            prepared["created_at"] = created
            if "updated_at" in prepared and "updated_at" not in row:
                prepared["updated_at"] = created
        self._last_created = created
        return prepared

    # =========================================================================
    # WRITES
    # =========================================================================

    async def insert(self, collection: str, row: Row) -> Row:
        return (await self._insert("insert", collection, [row]))[0]

    async def insert_many(self, collection: str, rows: list[Row]) -> list[Row]:
        return await self._insert("insert_many", collection, rows)

    async def insert_related(
        self,
        parent_collection: str,
        parent_row: Row,
        child_collection: str,
        child_rows: list[Row],
        foreign_key: str,
    ) -> tuple[Row, list[Row]]:
        # Both checks run before anything is written
        await self._before("insert", parent_collection)
        await self._before("insert_many", child_collection)

        parent = self._prepare(parent_collection, parent_row)
        children = [
            self._prepare(child_collection, {**row, foreign_key: parent["id"]})
            for row in child_rows
        ]
        if parent["id"] in self._tables[parent_collection]:
            raise StoreError("insert", parent_collection, f"duplicate id {parent['id']}")
        for row in children:
            if row["id"] in self._tables[child_collection]:
                raise StoreError("insert_many", child_collection, f"duplicate id {row['id']}")

        self._tables[parent_collection][parent["id"]] = parent
        for row in children:
            self._tables[child_collection][row["id"]] = row

        stored_parent = copy.deepcopy(parent)
        stored_children = [copy.deepcopy(row) for row in children]
        await self._publish(parent_collection, "insert", [stored_parent])
        await self._publish(child_collection, "insert", stored_children)
        return stored_parent, stored_children

    async def _insert(self, operation: str, collection: str, rows: list[Row]) -> list[Row]:
        await self._before(operation, collection)
        table = self._tables[collection]

        prepared = [self._prepare(collection, row) for row in rows]
        for row in prepared:
            if row["id"] in table:
                raise StoreError(operation, collection, f"duplicate id {row['id']}")

        for row in prepared:
            table[row["id"]] = row

        stored = [copy.deepcopy(row) for row in prepared]
        await self._publish(collection, "insert", stored)
        return stored

    async def update(self, collection: str, filters: Filters, values: Row) -> list[Row]:
        await self._before("update", collection)
        conditions = parse_filters(filters)

        updated = []
        for row in self._tables[collection].values():
            if _matches(row, conditions):
                row.update(values)
                updated.append(copy.deepcopy(row))

        await self._publish(collection, "update", updated)
        return updated

    async def delete(self, collection: str, filters: Filters) -> int:
        await self._before("delete", collection)
        conditions = parse_filters(filters)
        table = self._tables[collection]

        doomed = [row_id for row_id, row in table.items() if _matches(row, conditions)]
        removed = [table.pop(row_id) for row_id in doomed]

        await self._publish(collection, "delete", removed)
        return len(removed)

    # =========================================================================
    # READS
    # =========================================================================

    async def select(
        self,
        collection: str,
        filters: Filters = None,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        await self._before("select", collection)
        conditions = parse_filters(filters)

        rows = [row for row in self._tables[collection].values() if _matches(row, conditions)]

        column, descending = parse_order_by(order_by)
        if column:
            # None sorts last in ascending order
            rows.sort(
                key=lambda r: (r.get(column) is None, r.get(column)),
                reverse=descending,
            )

        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(row) for row in rows]

    async def count(self, collection: str, filters: Filters = None) -> int:
        await self._before("count", collection)
        conditions = parse_filters(filters)
        return sum(1 for row in self._tables[collection].values() if _matches(row, conditions))

    async def health_check(self) -> bool:
        return True
