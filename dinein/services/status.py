"""
Order Status State Machine

    pending ──> preparing ──> ready ──> completed
       │            │           │
       └────────────┴───────────┴──> cancelled

`completed` and `cancelled` are terminal.

Two entry points share the table below:
    - quick actions (advance / cancel / apply_quick_action) only follow
      the forward edge of the current state, or cancel;
    - set_status is the operator override from the order detail view: it
      may jump to any status, but a terminal order stays closed.

Every change is one single-row update of `status` and `updated_at`.
Concurrent writers are not coordinated; the last write wins. If the store
rejects the write, OrderPersistenceError is raised and the caller keeps
showing the previous status.
"""

import logging
from typing import Optional

from dinein.core.exceptions import (
    InvalidTransitionError,
    OrderNotFoundError,
    OrderPersistenceError,
    StoreError,
)
from dinein.models import OrderStatus, utcnow
from dinein.schemas import Order
from dinein.services.store.base import BaseDataStore

logger = logging.getLogger(__name__)

FORWARD: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.COMPLETED,
}

TERMINAL = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    """Forward target of `status`, or None for terminal states."""
    return FORWARD.get(OrderStatus(status))


def quick_actions(status: OrderStatus) -> list[OrderStatus]:
    """Transitions offered as one-tap actions: the forward step plus cancel."""
    forward = next_status(status)
    if forward is None:
        return []
    return [forward, OrderStatus.CANCELLED]


class OrderStatusMachine:

    def __init__(self, store: BaseDataStore):
        self.store = store

    async def current_status(self, order_id: str) -> OrderStatus:
        try:
            row = await self.store.select_one("orders", {"id": order_id})
        except StoreError as e:
            raise OrderPersistenceError(f"Could not load order #{order_id}", detail=str(e)) from e
        if row is None:
            raise OrderNotFoundError(order_id)
        return OrderStatus(row["status"])

    async def _write(self, order_id: str, current: OrderStatus, target: OrderStatus) -> Order:
        try:
            rows = await self.store.update(
                "orders",
                {"id": order_id},
                {"status": target.value, "updated_at": utcnow()},
            )
        except StoreError as e:
            logger.error(f"Status change {current.value} -> {target.value} failed for #{order_id}: {e}")
            raise OrderPersistenceError(
                f"Could not update order #{order_id}", detail=str(e)
            ) from e

        if not rows:
            raise OrderNotFoundError(order_id)

        logger.info(f"Order #{order_id}: {current.value} → {target.value}")
        return Order.model_validate(rows[0])

    async def advance(self, order_id: str) -> Order:
        """Move the order one step forward (pending → preparing → ready → completed)."""
        current = await self.current_status(order_id)
        target = next_status(current)
        if target is None:
            raise InvalidTransitionError(current.value, "next", "order is closed")
        return await self._write(order_id, current, target)

    async def cancel(self, order_id: str) -> Order:
        return await self.apply_quick_action(order_id, OrderStatus.CANCELLED)

    async def apply_quick_action(self, order_id: str, target: OrderStatus) -> Order:
        """Apply `target` only if it is one of the quick actions for the current state."""
        target = OrderStatus(target)
        current = await self.current_status(order_id)
        if target not in quick_actions(current):
            raise InvalidTransitionError(current.value, target.value, "not offered as a quick action")
        return await self._write(order_id, current, target)

    async def set_status(self, order_id: str, target: OrderStatus) -> Order:
        """
        Operator override: set any status, including backwards jumps.

        Raises:
            InvalidTransitionError: The order is already completed or cancelled
        """
        target = OrderStatus(target)
        current = await self.current_status(order_id)
        if is_terminal(current):
            raise InvalidTransitionError(current.value, target.value, "order is closed")
        return await self._write(order_id, current, target)
