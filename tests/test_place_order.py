import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.core.exceptions import InsufficientStock, InvalidRequest, ProductUnavailable
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.product import Product
from app.service.orders import place_order


async def _count(session_factory, model):
    async with session_factory() as s:
        return (await s.execute(select(func.count()).select_from(model))).scalar_one()


async def test_single_line_order(session_factory, catalog, stock_of, user_id):
    async with session_factory() as s:
        order = await place_order(s, user_id, [{"product_id": catalog.apple.id, "quantity": 3}], "Main st. 1")

    assert order.status == "pending"
    assert order.total_amount == Decimal("300.00")
    assert order.user_id == user_id
    assert order.delivery_address == "Main st. 1"
    assert len(order.items) == 1
    assert order.items[0].unit_price == Decimal("100.00")
    assert order.items[0].product_name == "Apple"
    assert await stock_of(catalog.apple.id) == 2


async def test_insufficient_stock_rolls_back_whole_cart(session_factory, catalog, stock_of, user_id):
    cart = [
        {"product_id": catalog.apple.id, "quantity": 3},
        {"product_id": catalog.lemon.id, "quantity": 100},
    ]
    async with session_factory() as s:
        with pytest.raises(InsufficientStock) as exc:
            await place_order(s, user_id, cart, "Main st. 1")

    assert str(catalog.lemon.id) in exc.value.detail
    assert await stock_of(catalog.apple.id) == 5
    assert await stock_of(catalog.lemon.id) == 10
    assert await _count(session_factory, Order) == 0
    assert await _count(session_factory, OrderItem) == 0


async def test_inactive_product_rolls_back(session_factory, catalog, stock_of, user_id):
    cart = [
        {"product_id": catalog.apple.id, "quantity": 1},
        {"product_id": catalog.pear.id, "quantity": 1},
    ]
    async with session_factory() as s:
        with pytest.raises(ProductUnavailable):
            await place_order(s, user_id, cart, "Main st. 1")

    assert await stock_of(catalog.apple.id) == 5
    assert await stock_of(catalog.pear.id) == 7
    assert await _count(session_factory, Order) == 0


async def test_unknown_product(session_factory, catalog, user_id):
    async with session_factory() as s:
        with pytest.raises(ProductUnavailable):
            await place_order(s, user_id, [{"product_id": uuid4(), "quantity": 1}], "Main st. 1")


@pytest.mark.parametrize(
    "items",
    [
        [],
        [{"product_id": "not-a-uuid", "quantity": 1}],
        [{"quantity": 1}],
    ],
)
async def test_malformed_cart(session_factory, catalog, user_id, items):
    async with session_factory() as s:
        with pytest.raises(InvalidRequest):
            await place_order(s, user_id, items, "Main st. 1")

    assert await _count(session_factory, Order) == 0


@pytest.mark.parametrize("quantity", [0, -2, 1.5, True, "3"])
async def test_invalid_quantity(session_factory, catalog, user_id, quantity):
    async with session_factory() as s:
        with pytest.raises(InvalidRequest):
            await place_order(s, user_id, [{"product_id": catalog.apple.id, "quantity": quantity}], "Main st. 1")


@pytest.mark.parametrize("address", [None, "", "   "])
async def test_delivery_address_required(session_factory, catalog, user_id, address):
    async with session_factory() as s:
        with pytest.raises(InvalidRequest):
            await place_order(s, user_id, [{"product_id": catalog.apple.id, "quantity": 1}], address)


async def test_repeated_product_lines_share_stock(session_factory, catalog, stock_of, user_id):
    cart = [
        {"product_id": catalog.apple.id, "quantity": 3},
        {"product_id": catalog.apple.id, "quantity": 3},
    ]
    async with session_factory() as s:
        with pytest.raises(InsufficientStock):
            await place_order(s, user_id, cart, "Main st. 1")
    assert await stock_of(catalog.apple.id) == 5

    cart[1]["quantity"] = 2
    async with session_factory() as s:
        order = await place_order(s, user_id, cart, "Main st. 1")

    assert len(order.items) == 2
    assert order.total_amount == Decimal("500.00")
    assert await stock_of(catalog.apple.id) == 0


async def test_total_matches_lines_and_stock_matches_quantities(session_factory, catalog, stock_of, user_id):
    cart = [
        {"product_id": catalog.apple.id, "quantity": 2},
        {"product_id": catalog.lemon.id, "quantity": 7},
    ]
    async with session_factory() as s:
        order = await place_order(s, user_id, cart, "Main st. 1", is_online_order=False)

    assert order.is_online_order is False
    assert order.total_amount == sum(i.unit_price * i.quantity for i in order.items)
    assert order.total_amount == Decimal("550.00")
    assert await stock_of(catalog.apple.id) == 3
    assert await stock_of(catalog.lemon.id) == 3


async def test_unit_price_is_captured_at_order_time(session_factory, catalog, user_id):
    async with session_factory() as s:
        order = await place_order(s, user_id, [{"product_id": catalog.lemon.id, "quantity": 1}], "Main st. 1")

    async with session_factory() as s:
        async with s.begin():
            lemon = await s.get(Product, catalog.lemon.id)
            lemon.price = Decimal("75.00")

    async with session_factory() as s:
        item = (await s.execute(select(OrderItem).where(OrderItem.order_id == order.id))).scalar_one()
    assert item.unit_price == Decimal("50.00")


async def test_concurrent_orders_can_not_oversell(session_factory, catalog, stock_of):
    async def order_three():
        async with session_factory() as s:
            return await place_order(s, uuid4(), [{"product_id": catalog.apple.id, "quantity": 3}], "Main st. 1")

    results = await asyncio.gather(order_three(), order_three(), return_exceptions=True)

    placed = [r for r in results if isinstance(r, Order)]
    rejected = [r for r in results if isinstance(r, InsufficientStock)]
    assert len(placed) == 1
    assert len(rejected) == 1
    assert await stock_of(catalog.apple.id) == 2
    assert await _count(session_factory, Order) == 1
