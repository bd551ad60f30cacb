"""
Reports

Aggregates for the staff dashboard and the sales report view. Rendering
the charts is up to the client; these functions only compute the series.

Timestamps are stored in UTC. "Today" and the daily series follow the
restaurant's local date (`restaurant_timezone` setting).
"""

import logging
from collections import Counter
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from dinein.core.config import get_settings
from dinein.core.exceptions import OrderPersistenceError, StoreError
from dinein.models import OrderStatus
from dinein.schemas import DailySales, DashboardStats, QuantityBucket, SalesReport
from dinein.services.orders import fetch_orders
from dinein.services.store.base import BaseDataStore

logger = logging.getLogger(__name__)

TOP_DISHES = 5
MAX_DISH_NAME = 20


def _short_name(name: str) -> str:
    if len(name) > MAX_DISH_NAME:
        return name[:MAX_DISH_NAME - 2] + "..."
    return name


def _local_date(created: datetime, tz: tzinfo) -> str:
    # SQLite hands back naive datetimes; they were written as UTC
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.astimezone(tz).date().isoformat()


def _percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    value = Decimal(part) * 100 / Decimal(whole)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def dashboard_stats(
    store: BaseDataStore,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> DashboardStats:
    """Headline counters plus the five most recent orders."""
    tz = tz or get_settings().tzinfo
    local_now = (now or datetime.now(timezone.utc)).astimezone(tz)
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0).astimezone(timezone.utc)

    try:
        categories = await store.count("categories")
        items = await store.count("menu_items")
        pending = await store.count("orders", {"status": OrderStatus.PENDING.value})
        today = await store.count("orders", {"created_at__gte": midnight})
    except StoreError as e:
        raise OrderPersistenceError("Could not load dashboard stats", detail=str(e)) from e

    recent = await fetch_orders(store, limit=5)

    return DashboardStats(
        categories=categories,
        items=items,
        pending_orders=pending,
        today_orders=today,
        recent_orders=recent,
    )


async def sales_report(store: BaseDataStore, tz: Optional[tzinfo] = None) -> SalesReport:
    tz = tz or get_settings().tzinfo
    try:
        orders = await store.select("orders", order_by="created_at")
        lines = await store.select("order_items")
        menu_items = {row["id"]: row for row in await store.select("menu_items")}
        categories = {row["id"]: row for row in await store.select("categories")}
    except StoreError as e:
        raise OrderPersistenceError("Could not load sales data", detail=str(e)) from e

    # Headline numbers
    total_revenue = sum((Decimal(str(o["total_amount"])) for o in orders), Decimal("0"))
    completed = sum(1 for o in orders if o["status"] == OrderStatus.COMPLETED.value)

    # Daily series, in date order of the first order seen that day
    revenue_by_day: dict[str, Decimal] = {}
    orders_by_day: Counter = Counter()
    for order in orders:
        created = order.get("created_at")
        day = _local_date(created, tz) if created else "unknown"
        revenue_by_day[day] = revenue_by_day.get(day, Decimal("0")) + Decimal(str(order["total_amount"]))
        orders_by_day[day] += 1
    daily = [
        DailySales(date=day, revenue=revenue, orders=orders_by_day[day])
        for day, revenue in revenue_by_day.items()
    ]

    # Dishes and categories by quantity sold
    dish_counts: Counter = Counter()
    category_counts: Counter = Counter()
    for line in lines:
        dish_counts[line["menu_item_id"]] += line["quantity"]
        item = menu_items.get(line["menu_item_id"])
        category_counts[item["category_id"] if item else None] += line["quantity"]

    top_dishes = [
        QuantityBucket(
            name=_short_name(menu_items[item_id]["name"]) if item_id in menu_items else "Unknown",
            count=count,
        )
        for item_id, count in dish_counts.most_common(TOP_DISHES)
    ]

    category_buckets = [
        QuantityBucket(
            name=categories[category_id]["name"] if category_id in categories else "Other",
            count=count,
        )
        for category_id, count in category_counts.items()
    ]

    status_breakdown: dict[str, int] = {}
    for order in orders:
        status_breakdown[order["status"]] = status_breakdown.get(order["status"], 0) + 1

    return SalesReport(
        total_revenue=total_revenue,
        total_orders=len(orders),
        completed_orders=completed,
        completion_rate=_percent(completed, len(orders)),
        daily=daily,
        top_dishes=top_dishes,
        status_breakdown=status_breakdown,
        categories=category_buckets,
    )
