from __future__ import annotations

from typing import Sequence
from uuid import UUID

from loguru import logger
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFound
from app.core.metrics import ORDERS_SERVICE_OPERATIONS_TOTAL
from app.models.order import Order
from app.models.order_item import OrderItem
from env import SERVICE_NAME


def _hydrated() -> Select:
    return (
        select(Order)
        .options(selectinload(Order.items).selectinload(OrderItem.product))
        .execution_options(populate_existing=True)
    )


async def get_order(session: AsyncSession, order_id: UUID) -> Order | None:
    res = await session.execute(_hydrated().where(Order.id == order_id))
    return res.scalar_one_or_none()


async def get_orders_for_user(session: AsyncSession, user_id: UUID) -> Sequence[Order]:
    logger.info(
        "Fetching orders for user_id='{user_id}'",
        user_id=str(user_id),
    )
    q = _hydrated().where(Order.user_id == user_id).order_by(Order.order_date.desc())
    orders = (await session.execute(q)).scalars().all()
    ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="list_own",
        status="success",
    ).inc()
    return orders


async def get_all_orders(session: AsyncSession) -> Sequence[Order]:
    logger.info("Fetching all orders")
    q = _hydrated().order_by(Order.order_date.desc())
    orders = (await session.execute(q)).scalars().all()
    ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="list_all",
        status="success",
    ).inc()
    return orders


async def get_order_details(
    session: AsyncSession,
    order_id: UUID,
    requester_id: UUID,
    is_admin: bool,
) -> Order:
    """
    Non-admins only ever see their own orders: the owner filter is part of
    the query, so a foreign order looks exactly like a missing one.
    """
    q = _hydrated().where(Order.id == order_id)
    if not is_admin:
        q = q.where(Order.user_id == requester_id)

    order = (await session.execute(q)).scalar_one_or_none()
    if order is None:
        logger.warning(
            "Order not found for requester. order_id='{order_id}', requester_id='{requester_id}'",
            order_id=str(order_id),
            requester_id=str(requester_id),
        )
        ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
            service=SERVICE_NAME,
            operation="get",
            status="not_found",
        ).inc()
        raise NotFound("Order not found")

    ORDERS_SERVICE_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="get",
        status="success",
    ).inc()
    return order
