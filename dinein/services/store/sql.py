"""
SQL Data Store

Production data store running on a SQLAlchemy async engine (PostgreSQL via
psycopg; SQLite via aiosqlite in tests). Uses SQLAlchemy Core against the
tables declared in dinein.models.

Each call runs in its own transaction: `insert_many` is all or nothing and
`update` is a single statement, so concurrent status writes resolve as
last write wins.
"""

import enum
import logging
from typing import Optional

from sqlalchemy import Table, and_, delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from dinein.core.exceptions import StoreError
from dinein.database import Base
from dinein.services.store.base import (
    BaseDataStore,
    Filters,
    Row,
    parse_filters,
    parse_order_by,
    with_defaults,
)

logger = logging.getLogger(__name__)


def _plain(row) -> Row:
    """Row mapping to dict, with enum members flattened to their values."""
    return {
        key: value.value if isinstance(value, enum.Enum) else value
        for key, value in row._mapping.items()
    }


class SqlDataStore(BaseDataStore):
    """SQLAlchemy-backed data store."""

    def __init__(self, engine: AsyncEngine, feed=None):
        super().__init__(feed)
        self.engine = engine
        logger.info(f"SqlDataStore initialized ({engine.url.get_backend_name()})")

    @property
    def provider_name(self) -> str:
        return "sql"

    def _table(self, operation: str, collection: str) -> Table:
        # Register models on Base.metadata
        import dinein.models  # noqa: F401

        table = Base.metadata.tables.get(collection)
        if table is None:
            raise StoreError(operation, collection, "unknown collection")
        return table

    def _where(self, table: Table, filters: Filters):
        clauses = []
        for column_name, op, value in parse_filters(filters):
            column = table.c[column_name]
            if op == "eq":
                clauses.append(column.is_(None) if value is None else column == value)
            elif op == "gte":
                clauses.append(column >= value)
            elif op == "lte":
                clauses.append(column <= value)
            elif op == "in":
                clauses.append(column.in_(list(value)))
        return and_(*clauses) if clauses else None

    # =========================================================================
    # WRITES
    # =========================================================================

    async def insert(self, collection: str, row: Row) -> Row:
        return (await self._insert("insert", collection, [row]))[0]

    async def insert_many(self, collection: str, rows: list[Row]) -> list[Row]:
        return await self._insert("insert_many", collection, rows)

    async def _insert(self, operation: str, collection: str, rows: list[Row]) -> list[Row]:
        table = self._table(operation, collection)
        if not rows:
            return []
        prepared = [with_defaults(collection, row) for row in rows]
        ids = [row["id"] for row in prepared]

        try:
            async with self.engine.begin() as conn:
                # Rows may carry different columns, so no executemany
                for row in prepared:
                    await conn.execute(insert(table).values(**row))
                result = await conn.execute(select(table).where(table.c.id.in_(ids)))
                by_id = {row.id: _plain(row) for row in result}
        except SQLAlchemyError as e:
            logger.error(f"Insert into {collection} failed: {e}")
            raise StoreError(operation, collection, str(e)) from e

        stored = [by_id[row_id] for row_id in ids]
        await self._publish(collection, "insert", stored)
        return stored

    async def insert_related(
        self,
        parent_collection: str,
        parent_row: Row,
        child_collection: str,
        child_rows: list[Row],
        foreign_key: str,
    ) -> tuple[Row, list[Row]]:
        parent_table = self._table("insert", parent_collection)
        child_table = self._table("insert_many", child_collection)

        parent = with_defaults(parent_collection, parent_row)
        children = [
            with_defaults(child_collection, {**row, foreign_key: parent["id"]})
            for row in child_rows
        ]
        child_ids = [row["id"] for row in children]

        try:
            async with self.engine.begin() as conn:
                await conn.execute(insert(parent_table), [parent])
                for row in children:
                    await conn.execute(insert(child_table).values(**row))

                result = await conn.execute(select(parent_table).where(parent_table.c.id == parent["id"]))
                stored_parent = _plain(result.one())
                result = await conn.execute(select(child_table).where(child_table.c.id.in_(child_ids)))
                by_id = {row.id: _plain(row) for row in result}
        except SQLAlchemyError as e:
            logger.error(f"Insert into {parent_collection}/{child_collection} rolled back: {e}")
            raise StoreError("insert_related", parent_collection, str(e)) from e

        stored_children = [by_id[row_id] for row_id in child_ids]
        await self._publish(parent_collection, "insert", [stored_parent])
        await self._publish(child_collection, "insert", stored_children)
        return stored_parent, stored_children

    async def update(self, collection: str, filters: Filters, values: Row) -> list[Row]:
        table = self._table("update", collection)
        where = self._where(table, filters)

        try:
            async with self.engine.begin() as conn:
                id_query = select(table.c.id)
                if where is not None:
                    id_query = id_query.where(where)
                ids = list((await conn.execute(id_query)).scalars())
                if not ids:
                    return []
                await conn.execute(update(table).where(table.c.id.in_(ids)).values(**values))
                result = await conn.execute(select(table).where(table.c.id.in_(ids)))
                updated = [_plain(row) for row in result]
        except SQLAlchemyError as e:
            logger.error(f"Update of {collection} failed: {e}")
            raise StoreError("update", collection, str(e)) from e

        await self._publish(collection, "update", updated)
        return updated

    async def delete(self, collection: str, filters: Filters) -> int:
        table = self._table("delete", collection)
        where = self._where(table, filters)

        try:
            async with self.engine.begin() as conn:
                query = select(table)
                if where is not None:
                    query = query.where(where)
                removed = [_plain(row) for row in await conn.execute(query)]
                if removed:
                    await conn.execute(
                        delete(table).where(table.c.id.in_([row["id"] for row in removed]))
                    )
        except SQLAlchemyError as e:
            logger.error(f"Delete from {collection} failed: {e}")
            raise StoreError("delete", collection, str(e)) from e

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
        table = self._table("select", collection)
        query = select(table)

        where = self._where(table, filters)
        if where is not None:
            query = query.where(where)

        column, descending = parse_order_by(order_by)
        if column:
            query = query.order_by(table.c[column].desc() if descending else table.c[column])
        if limit is not None:
            query = query.limit(limit)

        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(query)
                return [_plain(row) for row in result]
        except SQLAlchemyError as e:
            logger.error(f"Select from {collection} failed: {e}")
            raise StoreError("select", collection, str(e)) from e

    async def count(self, collection: str, filters: Filters = None) -> int:
        table = self._table("count", collection)
        query = select(func.count()).select_from(table)

        where = self._where(table, filters)
        if where is not None:
            query = query.where(where)

        try:
            async with self.engine.connect() as conn:
                return (await conn.execute(query)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Count on {collection} failed: {e}")
            raise StoreError("count", collection, str(e)) from e

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(select(1))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.engine.dispose()
