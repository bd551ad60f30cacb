from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from dinein.models import OrderStatus
from dinein.services.cart import Cart
from dinein.services.excel_manager import ExcelManager
from dinein.services.orders import OrderSubmitter
from dinein.services.reports import dashboard_stats, sales_report
from dinein.services.status import OrderStatusMachine
from tests.conftest import make_item


async def _place(store, *items):
    cart = Cart()
    for item in items:
        cart.add(item)
    return await OrderSubmitter(store).submit(cart, table_number=1)


async def test_dashboard_stats(store, item_a, item_b):
    for _ in range(6):
        await _place(store, item_a)
    done = await _place(store, item_b)
    await OrderStatusMachine(store).set_status(done.id, OrderStatus.COMPLETED)

    stats = await dashboard_stats(store)

    assert stats.categories == 3
    assert stats.items == 7
    assert stats.pending_orders == 6
    assert stats.today_orders == 7
    assert len(stats.recent_orders) == 5
    assert stats.recent_orders[0].id == done.id


async def test_today_counts_from_midnight(store, item_a):
    await _place(store, item_a)
    tomorrow = datetime.now(timezone.utc) + timedelta(days=1)

    stats = await dashboard_stats(store, now=tomorrow)

    assert stats.today_orders == 0


async def test_sales_report(store, item_a, item_b):
    machine = OrderStatusMachine(store)
    first = await _place(store, item_a, item_a, item_b)
    second = await _place(store, item_b)
    await _place(store, item_a)
    await machine.set_status(first.id, OrderStatus.COMPLETED)
    await machine.cancel(second.id)

    report = await sales_report(store)

    assert report.total_orders == 3
    assert report.total_revenue == Decimal("21000")
    assert report.completed_orders == 1
    assert report.completion_rate == 33
    assert report.status_breakdown == {"completed": 1, "cancelled": 1, "pending": 1}
    assert sum(day.orders for day in report.daily) == 3
    assert report.top_dishes[0].name == "Grilled Fish"
    assert report.top_dishes[0].count == 3
    assert {bucket.name: bucket.count for bucket in report.categories} == {"Grills": 5}


async def test_long_and_missing_dish_names(store):
    long_item = make_item("item-long", 100, name="Slow Roasted Lamb Shoulder Platter")
    await store.insert("menu_items", long_item.model_dump(exclude={"images"}))
    await _place(store, long_item)
    await store.delete("menu_items", {"id": "item-long"})
    await _place(store, make_item("item-tea", 500))

    report = await sales_report(store)
    names = {bucket.name for bucket in report.top_dishes}

    assert "Unknown" in names
    assert "Black Tea" in names

    await store.insert("menu_items", long_item.model_dump(exclude={"images"}))
    report = await sales_report(store)
    assert "Slow Roasted Lamb ..." in {bucket.name for bucket in report.top_dishes}


async def test_empty_report(store):
    report = await sales_report(store)
    assert report.total_orders == 0
    assert report.completion_rate == 0
    assert report.daily == []


async def test_excel_export_writes_all_sheets(store, item_a, tmp_path):
    await _place(store, item_a)
    report = await sales_report(store)
    manager = ExcelManager(data_directory=str(tmp_path), filename="report.xlsx", lock_timeout=5)

    result = manager.export_sales_report(report.model_dump(mode="json"))

    assert result["success"], result["message"]
    summary = manager.read_sheet("summary")
    assert summary[0]["total_orders"] == 1
    assert summary[0]["total_revenue"] == 5000
    assert manager.read_sheet("top_dishes")[0]["name"] == "Grilled Fish"
    assert manager.read_sheet("missing") == []


async def test_dates_follow_restaurant_timezone(store):
    baghdad = ZoneInfo("Asia/Baghdad")
    # 01:30 and 11:00 on 2 May in Baghdad; the first is still 1 May in UTC
    for created in (datetime(2099, 5, 1, 22, 30, tzinfo=timezone.utc),
                    datetime(2099, 5, 2, 8, 0, tzinfo=timezone.utc)):
        await store.insert("orders", {
            "status": OrderStatus.PENDING.value,
            "total_amount": Decimal("1000"),
            "created_at": created,
        })
    now = datetime(2099, 5, 2, 9, 0, tzinfo=timezone.utc)

    assert (await dashboard_stats(store, now=now, tz=baghdad)).today_orders == 2
    assert (await dashboard_stats(store, now=now, tz=timezone.utc)).today_orders == 1

    local = await sales_report(store, tz=baghdad)
    assert [(d.date, d.orders) for d in local.daily] == [("2099-05-02", 2)]

    utc = await sales_report(store, tz=timezone.utc)
    assert [(d.date, d.orders) for d in utc.daily] == [("2099-05-01", 1), ("2099-05-02", 1)]
