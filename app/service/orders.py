from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Sequence
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidRequest, StorefrontError
from app.core.kafka import kafka_producer
from app.core.metrics import ORDERS_SERVICE_OPERATIONS_TOTAL
from app.models.order import Order
from app.models.order_item import OrderItem
from app.service.inventory import reserve
from app.service.events import order_event
from app.service.order_queries import get_order
from app.service.order_status import STATUS_PENDING
from env import SERVICE_NAME


def _to_money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _parse_items(items_in: Sequence[Mapping[str, Any]]) -> list[tuple[UUID, int]]:
    if not items_in:
        raise InvalidRequest("Order must contain at least one item")

    parsed: list[tuple[UUID, int]] = []
    for idx, raw_item in enumerate(items_in):
        try:
            product_id = UUID(str(raw_item["product_id"]))
        except (KeyError, TypeError, ValueError):
            raise InvalidRequest(f"Item #{idx}: product_id is missing or malformed")

        quantity = raw_item.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidRequest(f"Item #{idx}: quantity must be a positive integer")

        parsed.append((product_id, quantity))
    return parsed


async def place_order(
    session: AsyncSession,
    user_id: UUID,
    items_in: Sequence[Mapping[str, Any]],
    delivery_address: str | None,
    is_online_order: bool = True,
) -> Order:
    """
    Creates an order and reserves stock for every line as one transaction.

    Items are processed in the supplied order; each product row is locked
    before its stock is checked. Any failure (unknown or inactive product,
    insufficient stock, database error) rolls back the order row, all of its
    items and every stock decrement made so far.

    Returns the committed order with items and product names loaded.
    """
    ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="create",
        status="attempt",
    ).inc()
    logger.info(
        "Service place_order called for user_id='{user_id}' with {items_count} items",
        user_id=str(user_id),
        items_count=len(items_in) if items_in else 0,
    )

    try:
        items = _parse_items(items_in)
        if not delivery_address or not delivery_address.strip():
            raise InvalidRequest("Delivery address is required")

        async with session.begin():
            order = Order(
                user_id=user_id,
                status=STATUS_PENDING,
                total_amount=Decimal("0.00"),
                delivery_address=delivery_address.strip(),
                is_online_order=is_online_order,
            )
            session.add(order)
            await session.flush()

            total = Decimal("0.00")
            for product_id, qty in items:
                product = await reserve(session, product_id, qty)
                unit_price = _to_money(Decimal(product.price))
                line_total = unit_price * qty
                total += line_total
                session.add(
                    OrderItem(
                        order_id=order.id,
                        product_id=product_id,
                        quantity=qty,
                        unit_price=unit_price,
                    )
                )
                logger.debug(
                    "Order line added. order_id='{order_id}', product_id='{product_id}', qty={qty}, unit_price={unit_price}",
                    order_id=str(order.id),
                    product_id=str(product_id),
                    qty=qty,
                    unit_price=str(unit_price),
                )

            order.total_amount = _to_money(total)
            await session.flush()
            created = await get_order(session, order.id)
    except StorefrontError as e:
        logger.warning(
            "Service place_order rejected for user_id='{user_id}': {detail}",
            user_id=str(user_id),
            detail=e.detail,
        )
        ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
            service=SERVICE_NAME,
            operation="create",
            status=type(e).__name__,
        ).inc()
        raise

    logger.info(
        "Order committed. order_id='{order_id}', user_id='{user_id}', total_amount={total}",
        order_id=str(created.id),
        user_id=str(user_id),
        total=str(created.total_amount),
    )
    ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="create",
        status="success",
    ).inc()

    await kafka_producer.publish(order_event("ORDER_CREATED", created))
    return created
