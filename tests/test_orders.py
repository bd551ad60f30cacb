from decimal import Decimal

import pytest

from dinein.core.exceptions import (
    EmptyCartError,
    OrderNotFoundError,
    OrderPersistenceError,
    OrderValidationError,
)
from dinein.models import OrderStatus
from dinein.services.cart import Cart, CartLine
from dinein.services.orders import OrderSubmitter, fetch_order, fetch_orders


@pytest.fixture
def cart(item_a, item_b) -> Cart:
    cart = Cart()
    cart.add(item_a)
    cart.add(item_a)
    cart.add(item_b)
    return cart


async def test_submit_table_order(store, cart):
    order = await OrderSubmitter(store).submit(cart, table_number=4)

    assert order.total_amount == Decimal("13000")
    assert order.status == OrderStatus.PENDING
    assert order.table_number == 4
    assert order.customer_name is None

    lines = {line.menu_item_id: line for line in order.items}
    assert lines["item-a"].unit_price == Decimal("5000")
    assert lines["item-a"].quantity == 2
    assert lines["item-b"].unit_price == Decimal("3000")
    assert lines["item-b"].quantity == 1


async def test_one_header_and_one_row_per_line(store, cart):
    order = await OrderSubmitter(store).submit(cart.lines, table_number=4)

    assert await store.count("orders") == 1
    stored = await store.select("order_items", {"order_id": order.id})
    assert len(stored) == 2

    stored_total = sum(Decimal(row["unit_price"]) * row["quantity"] for row in stored)
    assert stored_total == order.total_amount


async def test_unit_price_frozen_at_submission(store, item_b):
    cart = Cart()
    cart.add(item_b)
    order = await OrderSubmitter(store).submit(cart)

    # Offer ends after the order went in
    await store.update("menu_items", {"id": "item-b"}, {"has_offer": False})

    reloaded = await fetch_order(store, order.id)
    assert reloaded.items[0].unit_price == Decimal("3000")
    assert reloaded.total_amount == Decimal("3000")


async def test_empty_cart_writes_nothing(store):
    before = await store.count("orders")
    cart = Cart()

    with pytest.raises(EmptyCartError):
        await OrderSubmitter(store).submit(cart)

    assert cart.is_empty
    assert await store.count("orders") == before
    assert await store.count("order_items") == 0


@pytest.mark.parametrize("table_number", [0, -3])
async def test_bad_table_number_rejected(store, cart, table_number):
    with pytest.raises(OrderValidationError):
        await OrderSubmitter(store).submit(cart, table_number=table_number)
    assert await store.count("orders") == 0


async def test_bad_line_quantity_and_duplicates_rejected(store, item_a):
    submitter = OrderSubmitter(store)

    with pytest.raises(OrderValidationError):
        await submitter.submit([CartLine(menu_item=item_a, quantity=0)])

    with pytest.raises(OrderValidationError):
        await submitter.submit([CartLine(menu_item=item_a), CartLine(menu_item=item_a)])

    assert await store.count("orders") == 0


@pytest.mark.parametrize("operation, collection", [
    ("insert", "orders"),
    ("insert_many", "order_items"),
])
async def test_store_failure_leaves_no_rows(store, feed, cart, operation, collection):
    store.fail_next(operation, collection)
    feed.published.clear()

    with pytest.raises(OrderPersistenceError):
        await OrderSubmitter(store).submit(cart, table_number=2)

    assert await store.count("orders") == 0
    assert await store.count("order_items") == 0
    assert feed.published == []


async def test_events_published_after_lines_exist(store, feed, cart):
    seen = []

    async def on_insert(event):
        seen.append(await store.count("order_items", {"order_id": event.new["id"]}))

    await feed.subscribe("orders", on_insert, events=["insert"])
    await OrderSubmitter(store).submit(cart)

    assert seen == [2]


async def test_blank_metadata_stored_as_null(store, cart):
    order = await OrderSubmitter(store).submit(
        cart, customer_name="  ", customer_phone="", notes=" window seat "
    )
    assert order.customer_name is None
    assert order.customer_phone is None
    assert order.notes == "window seat"


async def test_retry_is_not_deduplicated(store, cart):
    submitter = OrderSubmitter(store)
    await submitter.submit(cart, table_number=1)
    await submitter.submit(cart, table_number=1)
    assert await store.count("orders") == 2


async def test_fetch_orders_newest_first_with_names(store, cart, item_a):
    submitter = OrderSubmitter(store)
    first = await submitter.submit(cart, table_number=1)
    solo = Cart()
    solo.add(item_a)
    second = await submitter.submit(solo, table_number=2)

    orders = await fetch_orders(store)
    assert [o.id for o in orders] == [second.id, first.id]
    assert orders[0].items[0].menu_item_name == "Grilled Fish"

    assert len(await fetch_orders(store, limit=1)) == 1
    assert await fetch_orders(store, status=OrderStatus.COMPLETED) == []


async def test_fetch_unknown_order(store):
    with pytest.raises(OrderNotFoundError):
        await fetch_order(store, "nope")


async def test_fetch_orders_wraps_store_errors(store):
    store.fail_next("select", "orders")
    with pytest.raises(OrderPersistenceError):
        await fetch_orders(store)
