from uuid import UUID

from loguru import logger
from redis.asyncio.client import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, InvalidRequest, NotFound
from app.core.metrics import PRODUCTS_OPERATIONS_TOTAL
from app.crud.categories import invalidate_categories_cache
from app.models.category import Category
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductPatch, ProductRead
from app.service.order_status import STATUS_PENDING, STATUS_PROCESSING
from env import SERVICE_NAME


# columns that may not be cleared through a patch
_REQUIRED_FIELDS = {"name", "price", "stock_quantity"}


async def _ensure_category_exists(category_id: UUID, db: AsyncSession) -> None:
    found = (await db.execute(select(Category.id).where(Category.id == category_id))).first()
    if not found:
        logger.warning("Category not found with id={id}", id=category_id)
        raise NotFound("Category not found")


async def get_all_products_from_db(db: AsyncSession):
    logger.info("Request to get all active products from DB")

    result = await db.execute(
        select(Product).where(Product.is_active.is_(True)).order_by(Product.name)
    )
    products = result.scalars().all()

    logger.info(
        "Products list retrieved from DB, count={count}",
        count=len(products),
    )
    return [ProductRead.model_validate(p) for p in products]


async def get_product_from_db(id: UUID, db: AsyncSession):
    logger.info("Request to get product from DB with id={id}", id=id)

    result = await db.execute(
        select(Product).where(Product.id == id, Product.is_active.is_(True))
    )
    product = result.scalar_one_or_none()
    if not product:
        logger.warning("Product not found in DB with id={id}", id=id)
        raise NotFound("Product not found")

    return ProductRead.model_validate(product)


async def create_product_in_db(data: ProductCreate, db: AsyncSession, redis: Redis):
    logger.info(
        "Attempt to create a new product with name='{name}'",
        name=data.name,
    )
    if data.category_id is not None:
        await _ensure_category_exists(data.category_id, db)

    new_product = Product(**data.model_dump(), is_active=True)
    db.add(new_product)
    await db.commit()
    await db.refresh(new_product)

    logger.info("Product successfully created in DB: id={id}", id=new_product.id)
    PRODUCTS_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="create", status="success").inc()

    await invalidate_categories_cache(redis)
    return ProductRead.model_validate(new_product)


async def update_product_in_db(id: UUID, data: ProductPatch, db: AsyncSession, redis: Redis):
    """Applies only the fields present in the patch."""
    logger.info("Attempt to update product with id={id}", id=id)

    updates = data.model_dump(exclude_unset=True)
    if not updates:
        PRODUCTS_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="update", status="empty_patch").inc()
        raise InvalidRequest("No fields to update")

    cleared = sorted(f for f in _REQUIRED_FIELDS if f in updates and updates[f] is None)
    if cleared:
        raise InvalidRequest(f"Fields can not be null: {', '.join(cleared)}")

    result = await db.execute(select(Product).where(Product.id == id))
    product = result.scalar_one_or_none()
    if not product:
        logger.warning("Attempt to update non-existent product with id={id}", id=id)
        PRODUCTS_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="update", status="not_found").inc()
        raise NotFound("Product not found")

    if updates.get("category_id") is not None:
        await _ensure_category_exists(updates["category_id"], db)

    logger.debug(
        "Applying updates to product id={id}: fields={fields}",
        id=id,
        fields=list(updates.keys()),
    )
    for field, value in updates.items():
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)

    logger.info("Product successfully updated in DB: id={id}", id=id)
    PRODUCTS_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="update", status="success").inc()

    if "category_id" in updates:
        await invalidate_categories_cache(redis)
    return ProductRead.model_validate(product)


async def delete_product_from_db(id: UUID, db: AsyncSession, redis: Redis):
    """Soft delete: the row stays referenced by past order items."""
    logger.info("Attempt to delete product with id={id}", id=id)

    result = await db.execute(select(Product).where(Product.id == id))
    product = result.scalar_one_or_none()
    if not product:
        logger.warning("Attempt to delete non-existent product with id={id}", id=id)
        raise NotFound("Product not found")

    active_order = (
        await db.execute(
            select(Order.id)
            .join(OrderItem, OrderItem.order_id == Order.id)
            .where(
                OrderItem.product_id == id,
                Order.status.in_((STATUS_PENDING, STATUS_PROCESSING)),
            )
            .limit(1)
        )
    ).first()
    if active_order:
        logger.warning("Product id={id} is part of an active order, delete refused", id=id)
        PRODUCTS_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="delete", status="conflict").inc()
        raise Conflict("Cannot delete product with active orders")

    product.is_active = False
    await db.commit()

    logger.info("Product with id={id} deactivated", id=id)
    PRODUCTS_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="delete", status="success").inc()

    await invalidate_categories_cache(redis)
    return {"detail": "Product deleted"}
