import asyncio
from decimal import Decimal

from dinein.services.checkout import CheckoutSession
from dinein.services.orders import OrderSubmitter


def _session(store, seconds=0.05) -> CheckoutSession:
    return CheckoutSession(OrderSubmitter(store), confirmation_seconds=seconds)


async def test_success_clears_cart_and_shows_confirmation(store, item_a):
    session = _session(store)
    session.cart.add(item_a)
    session.table_number = 3
    session.customer_name = "Sara"

    result = await session.submit()

    assert result.success
    assert result.order.total_amount == Decimal("5000")
    assert session.cart.is_empty
    assert session.table_number is None
    assert session.customer_name == ""
    assert session.submitted
    assert not session.submitting

    await asyncio.sleep(0.1)
    assert not session.submitted


async def test_dismiss_ends_confirmation_early(store, item_a):
    session = _session(store, seconds=10)
    session.cart.add(item_a)
    await session.submit()

    session.dismiss_confirmation()
    assert not session.submitted


async def test_empty_cart_is_a_validation_error(store):
    session = _session(store)

    result = await session.submit()

    assert not result.success
    assert result.is_validation_error
    assert result.error_message
    assert await store.count("orders") == 0
    assert not session.submitted


async def test_persistence_failure_keeps_cart_and_fields(store, item_a, item_b):
    session = _session(store)
    session.cart.add(item_a)
    session.cart.add(item_b)
    session.table_number = 7
    session.notes = "Allergic to nuts"
    store.fail_next("insert_many", "order_items")

    result = await session.submit()

    assert not result.success
    assert result.is_persistence_error
    assert session.last_result is result
    assert len(session.cart) == 2
    assert session.table_number == 7
    assert session.notes == "Allergic to nuts"
    assert not session.submitted
    assert await store.count("orders") == 0

    # The customer retries once the store is back
    retry = await session.submit()
    assert retry.success
    assert await store.count("orders") == 1


async def test_dishes_added_while_sending_stay_in_cart(store, item_a, item_b):
    store.min_latency = store.max_latency = 0.05
    session = _session(store)
    session.cart.add(item_a)

    pending = asyncio.create_task(session.submit())
    await asyncio.sleep(0.01)
    assert session.submitting
    session.cart.add(item_b)
    session.cart.add(item_a)

    result = await pending

    assert result.success
    assert [(line.menu_item_id, line.quantity) for line in result.order.items] == [("item-a", 1)]
    assert [(line.item_id, line.quantity) for line in session.cart] == [("item-a", 1), ("item-b", 1)]


async def test_second_submit_while_sending_is_rejected(store, item_a):
    store.min_latency = store.max_latency = 0.05
    session = _session(store)
    session.cart.add(item_a)

    first, second = await asyncio.gather(session.submit(), session.submit())

    assert first.success
    assert not second.success
    assert second.is_validation_error
    assert second.error_message == "Order is already being sent"
    assert await store.count("orders") == 1
    assert session.last_result is first
