"""
Realtime Order Notifier

Keeps a staff member's order board in sync with the `orders` collection
and alerts them when a new order arrives.

Lifecycle:
    async with OrderNotifier(store, feed, sink) as notifier:
        ...  # notifier.board stays current while the view is open

    start() asks the sink for alert permission once, subscribes to
    insert/update events on `orders` and loads the board. stop() (or
    leaving the context) releases the subscription.

On insert the whole board is reloaded, then, only if permission was
granted, one alert and one sound cue go out. On update the affected order
is re-read and replaced. Events only trigger re-reads; their payloads are
never applied as deltas, so out-of-order delivery converges on the
store's current state.
"""

import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

from dinein.core.config import get_settings
from dinein.core.exceptions import DineInError, OrderNotFoundError
from dinein.models import OrderStatus
from dinein.schemas import Order
from dinein.services.notifications.base import Alert, BaseNotificationSink
from dinein.services.orders import fetch_order, fetch_orders
from dinein.services.realtime.base import BaseChangeFeed, ChangeEvent, Subscription
from dinein.services.store.base import BaseDataStore

logger = logging.getLogger(__name__)

BoardListener = Callable[["OrderBoard"], Awaitable[None]]


def format_amount(amount: Any) -> str:
    """13000 -> '13,000'; 12.5 -> '12.50'."""
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return f"{value:,.0f}"
    return f"{value:,.2f}"


def new_order_alert(row: dict[str, Any], currency_label: str) -> Alert:
    table = row.get("table_number")
    where = f"Table {table}" if table else "Table unassigned"
    total = row.get("total_amount")
    body = f"{where} - {format_amount(total)} {currency_label}" if total is not None else where
    return Alert(title="New order!", body=body, tag="new-order")


class OrderBoard:
    """Staff-visible order list, newest first."""

    def __init__(self):
        self._orders: list[Order] = []

    def __len__(self) -> int:
        return len(self._orders)

    @property
    def orders(self) -> list[Order]:
        return list(self._orders)

    def get(self, order_id: str) -> Optional[Order]:
        for order in self._orders:
            if order.id == order_id:
                return order
        return None

    def replace_all(self, orders: list[Order]) -> None:
        self._orders = list(orders)

    def upsert(self, order: Order) -> None:
        for index, existing in enumerate(self._orders):
            if existing.id == order.id:
                self._orders[index] = order
                return
        self._orders.insert(0, order)

    def discard(self, order_id: str) -> None:
        self._orders = [o for o in self._orders if o.id != order_id]

    def filter(self, status: Optional[OrderStatus] = None) -> list[Order]:
        if not status:
            return self.orders
        status = OrderStatus(status)
        return [o for o in self._orders if o.status == status]

    def status_counts(self) -> dict[str, int]:
        counts = {"all": len(self._orders)}
        for status in OrderStatus:
            counts[status.value] = sum(1 for o in self._orders if o.status == status)
        return counts


class OrderNotifier:

    def __init__(
        self,
        store: BaseDataStore,
        feed: BaseChangeFeed,
        sink: BaseNotificationSink,
        on_board_change: Optional[BoardListener] = None,
        currency_label: Optional[str] = None,
        sound_cue: Optional[str] = None,
    ):
        settings = get_settings()
        self.store = store
        self.feed = feed
        self.sink = sink
        self.on_board_change = on_board_change
        self.currency_label = currency_label or settings.currency_label
        self.sound_cue = sound_cue or settings.new_order_sound

        self.board = OrderBoard()
        self.alerts_enabled: Optional[bool] = None
        self.last_error: Optional[str] = None
        self._subscription: Optional[Subscription] = None

    @property
    def running(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def __aenter__(self) -> "OrderNotifier":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._subscription is not None:
            return

        if self.alerts_enabled is None:
            self.alerts_enabled = await self._request_permission()

        self._subscription = await self.feed.subscribe(
            "orders", self._handle_event, events=("insert", "update")
        )
        await self.refresh()
        logger.info(f"Order notifier started (alerts={'on' if self.alerts_enabled else 'off'})")

    async def stop(self) -> None:
        if self._subscription is None:
            return
        subscription, self._subscription = self._subscription, None
        await subscription.close()
        logger.info("Order notifier stopped")

    async def _request_permission(self) -> bool:
        try:
            return bool(await self.sink.request_permission())
        except Exception as e:
            logger.warning(f"Alert permission request failed, alerts off: {e}")
            return False

    # =========================================================================
    # BOARD
    # =========================================================================

    async def refresh(self) -> None:
        """Reload the whole board; on failure the previous board stays."""
        try:
            orders = await fetch_orders(self.store)
        except DineInError as e:
            self.last_error = e.message
            logger.error(f"Order board refresh failed: {e}")
            return
        self.last_error = None
        self.board.replace_all(orders)
        await self._board_changed()

    async def refresh_order(self, order_id: str) -> None:
        try:
            order = await fetch_order(self.store, order_id)
        except OrderNotFoundError:
            self.board.discard(order_id)
        except DineInError as e:
            self.last_error = e.message
            logger.error(f"Order #{order_id} refresh failed: {e}")
            return
        else:
            self.board.upsert(order)
        self.last_error = None
        await self._board_changed()

    async def _board_changed(self) -> None:
        if self.on_board_change is None:
            return
        try:
            await self.on_board_change(self.board)
        except Exception as e:
            logger.warning(f"Board listener failed: {e}")

    # =========================================================================
    # EVENTS
    # =========================================================================

    async def _handle_event(self, event: ChangeEvent) -> None:
        if event.event == "insert":
            await self.refresh()
            if self.alerts_enabled:
                await self._alert(event.new)
        elif event.event == "update":
            order_id = event.new.get("id")
            if order_id:
                await self.refresh_order(order_id)
            else:
                await self.refresh()

    async def _alert(self, row: dict[str, Any]) -> None:
        alert = new_order_alert(row, self.currency_label)
        try:
            await self.sink.show(alert)
        except Exception as e:
            logger.debug(f"Alert not shown: {e}")
        try:
            await self.sink.play_sound(self.sound_cue)
        except Exception as e:
            logger.debug(f"Sound cue not played: {e}")
