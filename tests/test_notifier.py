from decimal import Decimal

from dinein.models import OrderStatus
from dinein.services.cart import Cart
from dinein.services.notifications import MockNotificationSink
from dinein.services.notifier import OrderBoard, OrderNotifier, format_amount, new_order_alert
from dinein.services.orders import OrderSubmitter
from dinein.services.status import OrderStatusMachine


async def _place(store, item, table=4):
    cart = Cart()
    cart.add(item)
    return await OrderSubmitter(store).submit(cart, table_number=table)


def test_alert_text():
    alert = new_order_alert({"table_number": 4, "total_amount": Decimal("13000")}, "IQD")
    assert alert.title == "New order!"
    assert alert.body == "Table 4 - 13,000 IQD"

    alert = new_order_alert({"table_number": None, "total_amount": 500}, "IQD")
    assert alert.body == "Table unassigned - 500 IQD"
    assert format_amount("12.5") == "12.50"


async def test_insert_with_permission_alerts_once(store, feed, sink, item_a):
    async with OrderNotifier(store, feed, sink, sound_cue="/ding.mp3") as notifier:
        assert notifier.board.orders == []

        order = await _place(store, item_a)

        assert [o.id for o in notifier.board.orders] == [order.id]
        assert len(sink.alerts) == 1
        assert sink.alerts[0].body == "Table 4 - 5,000 IQD"
        assert sink.sounds == ["/ding.mp3"]


async def test_insert_without_permission_still_updates_board(store, feed, item_a):
    sink = MockNotificationSink(permission=False)

    async with OrderNotifier(store, feed, sink) as notifier:
        order = await _place(store, item_a)

        assert notifier.board.get(order.id) is not None
        assert sink.alerts == []
        assert sink.sounds == []


async def test_permission_requested_once(store, feed, sink, item_a):
    notifier = OrderNotifier(store, feed, sink)
    await notifier.start()
    await notifier.start()
    await _place(store, item_a)
    await _place(store, item_a, table=5)
    await notifier.stop()

    assert sink.permission_requests == 1
    assert len(sink.alerts) == 2


async def test_update_refreshes_single_order(store, feed, sink, item_a):
    order = await _place(store, item_a)
    changes = []

    async def on_change(board: OrderBoard):
        changes.append(board.status_counts())

    async with OrderNotifier(store, feed, sink, on_board_change=on_change) as notifier:
        await OrderStatusMachine(store).advance(order.id)

        assert notifier.board.get(order.id).status == OrderStatus.PREPARING
        assert notifier.board.filter(OrderStatus.PENDING) == []
        assert changes[-1]["preparing"] == 1
        assert changes[-1]["all"] == 1
        # Status updates never alert
        assert sink.alerts == []


async def test_stop_releases_subscription(store, feed, sink, item_a):
    notifier = OrderNotifier(store, feed, sink)
    await notifier.start()
    assert feed.subscriber_count("orders") == 1

    await notifier.stop()
    await notifier.stop()
    assert feed.subscriber_count("orders") == 0
    assert not notifier.running

    await _place(store, item_a)
    assert notifier.board.orders == []
    assert sink.alerts == []


async def test_sink_failures_are_ignored(store, feed, item_a):
    sink = MockNotificationSink(permission=True, fail=True)

    async with OrderNotifier(store, feed, sink) as notifier:
        order = await _place(store, item_a)
        assert notifier.board.get(order.id) is not None


async def test_refresh_failure_keeps_previous_board(store, feed, sink, item_a):
    order = await _place(store, item_a)

    async with OrderNotifier(store, feed, sink) as notifier:
        store.fail_next("select", "orders")
        await notifier.refresh()

        assert notifier.last_error
        assert [o.id for o in notifier.board.orders] == [order.id]

        await notifier.refresh()
        assert notifier.last_error is None
