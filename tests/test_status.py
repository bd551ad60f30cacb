import asyncio

import pytest

from dinein.core.exceptions import InvalidTransitionError, OrderNotFoundError, OrderPersistenceError
from dinein.models import OrderStatus
from dinein.services.cart import Cart
from dinein.services.orders import OrderSubmitter
from dinein.services.status import OrderStatusMachine, is_terminal, next_status, quick_actions


@pytest.fixture
async def order_id(store, item_a) -> str:
    cart = Cart()
    cart.add(item_a)
    order = await OrderSubmitter(store).submit(cart, table_number=5)
    return order.id


@pytest.fixture
def machine(store) -> OrderStatusMachine:
    return OrderStatusMachine(store)


def test_quick_actions_table():
    assert quick_actions(OrderStatus.PENDING) == [OrderStatus.PREPARING, OrderStatus.CANCELLED]
    assert quick_actions(OrderStatus.PREPARING) == [OrderStatus.READY, OrderStatus.CANCELLED]
    assert quick_actions(OrderStatus.READY) == [OrderStatus.COMPLETED, OrderStatus.CANCELLED]
    assert quick_actions(OrderStatus.COMPLETED) == []
    assert quick_actions(OrderStatus.CANCELLED) == []
    assert next_status("pending") == OrderStatus.PREPARING
    assert is_terminal(OrderStatus.CANCELLED)


async def test_advance_walks_forward_to_completed(machine, order_id):
    for expected in (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED):
        order = await machine.advance(order_id)
        assert order.status == expected

    with pytest.raises(InvalidTransitionError):
        await machine.advance(order_id)


@pytest.mark.parametrize("steps, start", [
    (0, OrderStatus.PENDING),
    (1, OrderStatus.PREPARING),
    (2, OrderStatus.READY),
])
async def test_cancel_from_any_open_state(machine, order_id, steps, start):
    for _ in range(steps):
        await machine.advance(order_id)
    assert await machine.current_status(order_id) == start

    order = await machine.cancel(order_id)
    assert order.status == OrderStatus.CANCELLED

    with pytest.raises(InvalidTransitionError):
        await machine.cancel(order_id)


async def test_quick_action_only_offers_forward_edge(machine, order_id):
    with pytest.raises(InvalidTransitionError):
        await machine.apply_quick_action(order_id, OrderStatus.READY)

    order = await machine.apply_quick_action(order_id, OrderStatus.PREPARING)
    assert order.status == OrderStatus.PREPARING


async def test_override_can_move_backwards(machine, order_id):
    await machine.advance(order_id)

    # Not offered as a quick action
    assert OrderStatus.PENDING not in quick_actions(await machine.current_status(order_id))
    with pytest.raises(InvalidTransitionError):
        await machine.apply_quick_action(order_id, OrderStatus.PENDING)

    order = await machine.set_status(order_id, OrderStatus.PENDING)
    assert order.status == OrderStatus.PENDING


async def test_override_rejected_on_closed_order(machine, order_id):
    await machine.set_status(order_id, OrderStatus.COMPLETED)
    with pytest.raises(InvalidTransitionError):
        await machine.set_status(order_id, OrderStatus.PREPARING)


async def test_write_touches_only_status_and_updated_at(store, machine, order_id):
    before = await store.select_one("orders", {"id": order_id})
    await machine.advance(order_id)
    after = await store.select_one("orders", {"id": order_id})

    changed = {key for key in after if after[key] != before[key]}
    assert changed <= {"status", "updated_at"}
    assert after["updated_at"] >= before["updated_at"]


async def test_concurrent_writes_last_one_wins(store, order_id):
    first = OrderStatusMachine(store)
    second = OrderStatusMachine(store)

    await first.set_status(order_id, OrderStatus.READY)
    await second.set_status(order_id, OrderStatus.PREPARING)

    row = await store.select_one("orders", {"id": order_id})
    assert row["status"] == OrderStatus.PREPARING.value


async def test_interleaved_writes_settle_on_final_write(store, order_id):
    machines = [OrderStatusMachine(store) for _ in range(2)]
    await asyncio.gather(
        machines[0].set_status(order_id, OrderStatus.READY),
        machines[1].set_status(order_id, OrderStatus.PREPARING),
    )
    updates = [e.new["status"] for e in store.feed.published if e.collection == "orders" and e.event == "update"]

    row = await store.select_one("orders", {"id": order_id})
    assert row["status"] == updates[-1]


async def test_store_failure_keeps_previous_status(store, machine, order_id):
    store.fail_next("update", "orders")

    with pytest.raises(OrderPersistenceError):
        await machine.advance(order_id)

    assert await machine.current_status(order_id) == OrderStatus.PENDING


async def test_unknown_order(machine):
    with pytest.raises(OrderNotFoundError):
        await machine.advance("missing")
