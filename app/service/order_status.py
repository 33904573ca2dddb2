"""
Order lifecycle.

    pending -> processing -> shipped -> delivered
    pending | processing | shipped -> cancelled

Orders move forward only (steps may be skipped). ``delivered`` and
``cancelled`` are terminal. Entering ``cancelled`` hands every reserved unit
back to the inventory in the same transaction as the status change.
"""
from __future__ import annotations

from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidStatus, InvalidStatusTransition, NotFound, StorefrontError
from app.core.kafka import kafka_producer
from app.core.metrics import ORDERS_SERVICE_OPERATIONS_TOTAL
from app.models.order import Order
from app.models.order_item import OrderItem
from app.service.events import order_event
from app.service.inventory import restore
from app.service.order_queries import get_order
from env import SERVICE_NAME


STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_SHIPPED = "shipped"
STATUS_DELIVERED = "delivered"
STATUS_CANCELLED = "cancelled"

FULFILLMENT_CHAIN = (STATUS_PENDING, STATUS_PROCESSING, STATUS_SHIPPED, STATUS_DELIVERED)
ORDER_STATUSES = FULFILLMENT_CHAIN + (STATUS_CANCELLED,)
TERMINAL_STATUSES = frozenset({STATUS_DELIVERED, STATUS_CANCELLED})


def validate_status(status: str) -> str:
    if status not in ORDER_STATUSES:
        raise InvalidStatus(
            f"Invalid status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}"
        )
    return status


def can_transition(current: str, new: str) -> bool:
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new == STATUS_CANCELLED:
        return True
    return FULFILLMENT_CHAIN.index(new) > FULFILLMENT_CHAIN.index(current)


async def _restore_order_stock(session: AsyncSession, order_id: UUID) -> int:
    # fixed product order keeps concurrent cancellations from deadlocking
    rows = (
        await session.execute(
            select(OrderItem.product_id, OrderItem.quantity)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.product_id)
        )
    ).all()
    for product_id, quantity in rows:
        await restore(session, product_id, quantity)
    return len(rows)


async def update_order_status(session: AsyncSession, order_id: UUID, new_status: str) -> Order:
    ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="update_status",
        status="attempt",
    ).inc()
    logger.info(
        "Service update_order_status called. order_id='{order_id}', new_status='{status}'",
        order_id=str(order_id),
        status=new_status,
    )

    try:
        validate_status(new_status)

        async with session.begin():
            q = (
                select(Order)
                .where(Order.id == order_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            order = (await session.execute(q)).scalar_one_or_none()
            if order is None:
                raise NotFound("Order not found")

            previous = order.status
            if not can_transition(previous, new_status):
                raise InvalidStatusTransition(
                    f"Cannot change order status from '{previous}' to '{new_status}'"
                )

            restored_lines = 0
            if new_status == STATUS_CANCELLED and previous != STATUS_CANCELLED:
                restored_lines = await _restore_order_stock(session, order_id)
                logger.info(
                    "Stock restored for cancelled order. order_id='{order_id}', lines={lines}",
                    order_id=str(order_id),
                    lines=restored_lines,
                )

            if previous != new_status:
                order.status = new_status
                await session.flush()

            updated = await get_order(session, order_id)
    except StorefrontError as e:
        logger.warning(
            "Service update_order_status rejected. order_id='{order_id}': {detail}",
            order_id=str(order_id),
            detail=e.detail,
        )
        ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
            service=SERVICE_NAME,
            operation="update_status",
            status=type(e).__name__,
        ).inc()
        raise

    ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="update_status",
        status="success" if previous != new_status else "noop",
    ).inc()

    if previous != new_status:
        await kafka_producer.publish(
            order_event(
                "ORDER_UPDATED",
                updated,
                previous_status=previous,
                stock_restored=restored_lines > 0,
            )
        )
    return updated
