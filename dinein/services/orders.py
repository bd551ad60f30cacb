"""
Order Submission & Queries

OrderSubmitter turns a finished cart into an order header plus one
order_items row per cart line. Unit prices are resolved once, at
submission, and frozen on the lines; the header total is the sum of
those frozen subtotals.

The header and its lines are written with a single `insert_related`
call, so readers see the whole order or none of it. A store failure
leaves nothing behind and surfaces as OrderPersistenceError.

Retried submissions are not deduplicated: if a write succeeded but the
acknowledgement was lost, a retry creates a second order.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from dinein.core.exceptions import (
    EmptyCartError,
    OrderNotFoundError,
    OrderPersistenceError,
    OrderValidationError,
    StoreError,
)
from dinein.models import OrderStatus
from dinein.schemas import Order, OrderLine
from dinein.services.cart import CartLine
from dinein.services.pricing import item_effective_price
from dinein.services.store.base import BaseDataStore, Row

logger = logging.getLogger(__name__)


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class OrderSubmitter:
    """Order Submission Transaction."""

    def __init__(self, store: BaseDataStore):
        self.store = store

    def _validate(self, lines: list[CartLine], table_number: Optional[int]) -> None:
        if not lines:
            raise EmptyCartError()
        if table_number is not None and table_number < 1:
            raise OrderValidationError(f"Invalid table number: {table_number}")

        seen = set()
        for line in lines:
            if line.quantity < 1:
                raise OrderValidationError(f"Invalid quantity {line.quantity} for item {line.item_id}")
            if line.item_id in seen:
                raise OrderValidationError(f"Duplicate cart line for item {line.item_id}")
            seen.add(line.item_id)

    async def submit(
        self,
        lines: Iterable[CartLine],
        table_number: Optional[int] = None,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Persist an order for the given cart lines.

        Args:
            lines: Cart lines (a Cart is accepted too)
            table_number: Positive table number, or None
            customer_name: Optional customer name
            customer_phone: Optional customer phone
            notes: Optional order-level notes

        Returns:
            The stored order with its lines

        Raises:
            EmptyCartError: No lines; nothing was written
            OrderValidationError: Bad table number or quantity; nothing was written
            OrderPersistenceError: The store rejected the write; nothing was kept
        """
        lines = list(lines)
        self._validate(lines, table_number)

        # Freeze unit prices now, against the items as they are at submission
        priced = [(line, item_effective_price(line.menu_item)) for line in lines]
        total_amount = sum((price * line.quantity for line, price in priced), Decimal("0"))

        header = {
            "table_number": table_number,
            "customer_name": _clean_text(customer_name),
            "customer_phone": _clean_text(customer_phone),
            "notes": _clean_text(notes),
            "status": OrderStatus.PENDING.value,
            "total_amount": total_amount,
        }
        line_rows = [
            {
                "menu_item_id": line.item_id,
                "quantity": line.quantity,
                "unit_price": price,
                "notes": _clean_text(line.notes),
            }
            for line, price in priced
        ]

        try:
            order_row, stored_lines = await self.store.insert_related(
                "orders", header, "order_items", line_rows, foreign_key="order_id"
            )
        except StoreError as e:
            logger.error(f"Order submission failed (table={table_number}): {e}")
            raise OrderPersistenceError("Could not save the order", detail=str(e)) from e

        names = {line.item_id: line.menu_item.name for line in lines}
        order = Order.model_validate({
            **order_row,
            "items": [
                {**row, "menu_item_name": names.get(row["menu_item_id"])}
                for row in stored_lines
            ],
        })
        logger.info(
            f"Order #{order.id} submitted: table={order.table_number} "
            f"lines={len(order.items)} total={order.total_amount}"
        )
        return order


# =============================================================================
# QUERIES
# =============================================================================

async def _attach_lines(store: BaseDataStore, order_rows: list[Row]) -> list[Order]:
    if not order_rows:
        return []

    ids = [row["id"] for row in order_rows]
    line_rows = await store.select("order_items", {"order_id__in": ids}, order_by="created_at")

    item_ids = list({row["menu_item_id"] for row in line_rows})
    names = {}
    if item_ids:
        for item in await store.select("menu_items", {"id__in": item_ids}):
            names[item["id"]] = item["name"]

    grouped: dict[str, list[Row]] = defaultdict(list)
    for row in line_rows:
        grouped[row["order_id"]].append({**row, "menu_item_name": names.get(row["menu_item_id"])})

    return [Order.model_validate({**row, "items": grouped[row["id"]]}) for row in order_rows]


async def fetch_orders(
    store: BaseDataStore,
    status: Optional[OrderStatus] = None,
    limit: Optional[int] = None,
) -> list[Order]:
    """Orders newest first, each with its lines and dish names."""
    filters = {"status": OrderStatus(status).value} if status else None
    try:
        rows = await store.select("orders", filters, order_by="-created_at", limit=limit)
        return await _attach_lines(store, rows)
    except StoreError as e:
        raise OrderPersistenceError("Could not load orders", detail=str(e)) from e


async def fetch_order(store: BaseDataStore, order_id: str) -> Order:
    try:
        row = await store.select_one("orders", {"id": order_id})
        if row is None:
            raise OrderNotFoundError(order_id)
        return (await _attach_lines(store, [row]))[0]
    except StoreError as e:
        raise OrderPersistenceError(f"Could not load order #{order_id}", detail=str(e)) from e
