"""
Stock bookkeeping for order transactions.

Every function here runs inside the caller's transaction and never commits:
a reservation only becomes visible to other transactions together with the
order that consumed it.
"""
from __future__ import annotations

from uuid import UUID

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.core.exceptions import InsufficientStock, NotFound, ProductUnavailable
from app.core.metrics import INVENTORY_OPERATIONS_TOTAL, INVENTORY_UNITS_TOTAL
from app.models.product import Product
from env import SERVICE_NAME


async def lock_product(session: AsyncSession, product_id: UUID) -> Product:
    """Row-locked read of an active product (SELECT ... FOR UPDATE)."""
    q = (
        select(Product)
        .where(Product.id == product_id, Product.is_active.is_(True))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    product = (await session.execute(q)).scalar_one_or_none()
    if product is None:
        logger.warning(
            "Product '{product_id}' not found or inactive",
            product_id=str(product_id),
        )
        raise ProductUnavailable(f"Product {product_id} not found or inactive")
    return product


async def reserve(session: AsyncSession, product_id: UUID, quantity: int) -> Product:
    INVENTORY_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="reserve",
        status="attempt",
    ).inc()
    try:
        product = await lock_product(session, product_id)
    except ProductUnavailable:
        INVENTORY_OPERATIONS_TOTAL.labels(
            service=SERVICE_NAME,
            operation="reserve",
            status="unavailable",
        ).inc()
        raise

    if product.stock_quantity < quantity:
        logger.warning(
            "Insufficient stock for product '{product_id}': requested={requested}, available={available}",
            product_id=str(product_id),
            requested=quantity,
            available=product.stock_quantity,
        )
        INVENTORY_OPERATIONS_TOTAL.labels(
            service=SERVICE_NAME,
            operation="reserve",
            status="insufficient_stock",
        ).inc()
        raise InsufficientStock(
            f"Insufficient stock for product {product_id}: "
            f"requested {quantity}, available {product.stock_quantity}"
        )

    # guarded decrement: stock can not go below zero even without the row lock
    res = await session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock_quantity >= quantity)
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        INVENTORY_OPERATIONS_TOTAL.labels(
            service=SERVICE_NAME,
            operation="reserve",
            status="insufficient_stock",
        ).inc()
        raise InsufficientStock(f"Insufficient stock for product {product_id}")

    set_committed_value(product, "stock_quantity", product.stock_quantity - quantity)
    logger.debug(
        "Reserved {quantity} of product '{product_id}', remaining={remaining}",
        quantity=quantity,
        product_id=str(product_id),
        remaining=product.stock_quantity,
    )
    INVENTORY_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="reserve",
        status="success",
    ).inc()
    INVENTORY_UNITS_TOTAL.labels(service=SERVICE_NAME, operation="reserve").inc(quantity)
    return product


async def restore(session: AsyncSession, product_id: UUID, quantity: int) -> None:
    """
    Hands reserved units back. Inactive products get their stock back too; a
    product row that no longer exists raises NotFound so the caller rolls back.
    """
    res = await session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock_quantity=Product.stock_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        logger.error(
            "Stock restore matched no product. product_id='{product_id}', quantity={quantity}",
            product_id=str(product_id),
            quantity=quantity,
        )
        INVENTORY_OPERATIONS_TOTAL.labels(
            service=SERVICE_NAME,
            operation="restore",
            status="not_found",
        ).inc()
        raise NotFound(f"Product {product_id} not found, stock can not be restored")

    logger.debug(
        "Restored {quantity} of product '{product_id}'",
        quantity=quantity,
        product_id=str(product_id),
    )
    INVENTORY_OPERATIONS_TOTAL.labels(
        service=SERVICE_NAME,
        operation="restore",
        status="success",
    ).inc()
    INVENTORY_UNITS_TOTAL.labels(service=SERVICE_NAME, operation="restore").inc(quantity)
