from uuid import uuid4

import pytest
from sqlalchemy import delete

from app.core.exceptions import InvalidStatus, InvalidStatusTransition, NotFound
from app.models.product import Product
from app.service.order_queries import get_order
from app.service.order_status import can_transition, update_order_status
from app.service.orders import place_order


@pytest.fixture
async def order(session_factory, catalog, user_id):
    cart = [
        {"product_id": catalog.apple.id, "quantity": 3},
        {"product_id": catalog.lemon.id, "quantity": 4},
    ]
    async with session_factory() as s:
        return await place_order(s, user_id, cart, "Main st. 1")


async def _set_status(session_factory, order_id, status):
    async with session_factory() as s:
        return await update_order_status(s, order_id, status)


@pytest.mark.parametrize(
    "current, new, allowed",
    [
        ("pending", "processing", True),
        ("pending", "shipped", True),
        ("processing", "delivered", True),
        ("shipped", "cancelled", True),
        ("pending", "pending", True),
        ("processing", "pending", False),
        ("shipped", "processing", False),
        ("delivered", "cancelled", False),
        ("cancelled", "pending", False),
        ("delivered", "delivered", True),
    ],
)
def test_can_transition(current, new, allowed):
    assert can_transition(current, new) is allowed


async def test_cancel_restores_stock(session_factory, catalog, stock_of, order):
    assert await stock_of(catalog.apple.id) == 2
    assert await stock_of(catalog.lemon.id) == 6

    updated = await _set_status(session_factory, order.id, "cancelled")

    assert updated.status == "cancelled"
    assert await stock_of(catalog.apple.id) == 5
    assert await stock_of(catalog.lemon.id) == 10


async def test_second_cancel_does_not_restore_again(session_factory, catalog, stock_of, order):
    await _set_status(session_factory, order.id, "cancelled")
    again = await _set_status(session_factory, order.id, "cancelled")

    assert again.status == "cancelled"
    assert await stock_of(catalog.apple.id) == 5
    assert await stock_of(catalog.lemon.id) == 10


async def test_cancel_after_shipping_restores_stock(session_factory, catalog, stock_of, order):
    await _set_status(session_factory, order.id, "processing")
    await _set_status(session_factory, order.id, "shipped")
    await _set_status(session_factory, order.id, "cancelled")

    assert await stock_of(catalog.apple.id) == 5


async def test_unknown_status_leaves_order_untouched(session_factory, order):
    with pytest.raises(InvalidStatus) as exc:
        await _set_status(session_factory, order.id, "bogus")

    assert exc.value.status_code == 400
    async with session_factory() as s:
        assert (await get_order(s, order.id)).status == "pending"


async def test_delivered_order_can_not_be_cancelled(session_factory, catalog, stock_of, order):
    await _set_status(session_factory, order.id, "delivered")

    with pytest.raises(InvalidStatusTransition) as exc:
        await _set_status(session_factory, order.id, "cancelled")

    assert exc.value.status_code == 409
    assert await stock_of(catalog.apple.id) == 2
    async with session_factory() as s:
        assert (await get_order(s, order.id)).status == "delivered"


async def test_status_can_not_move_backwards(session_factory, order):
    await _set_status(session_factory, order.id, "shipped")

    with pytest.raises(InvalidStatusTransition):
        await _set_status(session_factory, order.id, "processing")


async def test_cancelled_order_can_not_be_revived(session_factory, catalog, stock_of, order):
    await _set_status(session_factory, order.id, "cancelled")

    with pytest.raises(InvalidStatusTransition):
        await _set_status(session_factory, order.id, "pending")
    assert await stock_of(catalog.apple.id) == 5


async def test_forward_transition_keeps_stock(session_factory, catalog, stock_of, order):
    updated = await _set_status(session_factory, order.id, "processing")

    assert updated.status == "processing"
    assert len(updated.items) == 2
    assert await stock_of(catalog.apple.id) == 2


async def test_unknown_order(session_factory, catalog):
    with pytest.raises(NotFound):
        await _set_status(session_factory, uuid4(), "processing")


async def test_cancel_rolls_back_when_a_product_row_is_gone(session_factory, catalog, stock_of, order):
    async with session_factory() as s:
        async with s.begin():
            await s.execute(delete(Product).where(Product.id == catalog.lemon.id))

    with pytest.raises(NotFound):
        await _set_status(session_factory, order.id, "cancelled")

    assert await stock_of(catalog.apple.id) == 2
    async with session_factory() as s:
        assert (await get_order(s, order.id)).status == "pending"
