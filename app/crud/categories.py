from uuid import UUID

from loguru import logger
from redis.asyncio.client import Redis
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.exceptions import Conflict, InvalidRequest, NotFound
from app.core.metrics import CATEGORIES_OPERATIONS_TOTAL
from app.core.redis import cache_delete, cache_get_json, cache_set_json
from app.models.category import Category
from app.models.product import Product
from app.schemas.category import (
    CategoryCreate,
    CategoryListItem,
    CategoryProducts,
    CategoryRead,
    CategoryUpdate,
)
from app.schemas.product import ProductRead
from env import SERVICE_NAME, CATEGORIES_CACHE_KEY, CATEGORIES_CACHE_TTL_SECONDS


async def invalidate_categories_cache(redis: Redis) -> None:
    await cache_delete(redis, CATEGORIES_CACHE_KEY)


async def _get_category_or_404(id: UUID, db: AsyncSession) -> Category:
    result = await db.execute(select(Category).where(Category.id == id))
    cat = result.scalar_one_or_none()
    if not cat:
        logger.warning("Category not found with id={id}", id=id)
        raise NotFound("Category not found")
    return cat


async def _name_taken(name: str, db: AsyncSession, exclude_id: UUID | None = None) -> bool:
    q = select(Category.id).where(Category.name == name)
    if exclude_id is not None:
        q = q.where(Category.id != exclude_id)
    return (await db.execute(q)).first() is not None


async def get_all_categories_from_db(db: AsyncSession, redis: Redis):
    logger.info("Request to get all categories (try Redis cache first)")

    cached = await cache_get_json(redis, CATEGORIES_CACHE_KEY)
    if cached is not None:
        logger.info("Categories list retrieved from Redis cache")
        return [CategoryListItem.model_validate(c) for c in cached]

    parent = aliased(Category)
    q = (
        select(
            Category.id,
            Category.name,
            Category.parent_category_id,
            parent.name.label("parent_category_name"),
            func.count(Product.id).label("product_count"),
        )
        .outerjoin(parent, Category.parent_category_id == parent.id)
        .outerjoin(Product, Product.category_id == Category.id)
        .group_by(Category.id, Category.name, Category.parent_category_id, parent.name)
        .order_by(Category.parent_category_id.is_not(None), Category.name)
    )
    rows = (await db.execute(q)).all()

    response_models = [
        CategoryListItem(
            id=row.id,
            name=row.name,
            parent_category_id=row.parent_category_id,
            parent_category_name=row.parent_category_name,
            product_count=row.product_count,
            level="sub" if row.parent_category_id else "main",
        )
        for row in rows
    ]
    logger.info(
        "Categories list retrieved from DB and will be cached, count={count}",
        count=len(response_models),
    )

    await cache_set_json(
        redis,
        CATEGORIES_CACHE_KEY,
        [c.model_dump(mode="json") for c in response_models],
        CATEGORIES_CACHE_TTL_SECONDS,
    )

    return response_models


async def get_products_by_category_name(name: str, db: AsyncSession) -> CategoryProducts:
    """Active products of the named category and of its direct subcategories."""
    normalized = name.strip().lower()
    logger.info("Request to get products for category '{name}'", name=normalized)

    result = await db.execute(select(Category).where(func.lower(Category.name) == normalized))
    cat = result.scalars().first()
    if cat is None:
        logger.warning("Category not found by name '{name}'", name=normalized)
        raise NotFound("Category not found")

    sub_ids = select(Category.id).where(Category.parent_category_id == cat.id)
    q = (
        select(Product)
        .where(
            Product.is_active.is_(True),
            (Product.category_id == cat.id) | Product.category_id.in_(sub_ids),
        )
        .order_by(Product.name)
    )
    products = (await db.execute(q)).scalars().all()

    CATEGORIES_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="products", status="success").inc()
    return CategoryProducts(
        category=CategoryRead.model_validate(cat),
        products=[ProductRead.model_validate(p) for p in products],
    )


async def create_category_in_db(category: CategoryCreate, db: AsyncSession, redis: Redis):
    logger.info(
        "Attempt to create a new category with name='{name}'",
        name=category.name,
    )

    name = category.name.strip()
    if not name:
        raise InvalidRequest("Category name is required")
    if await _name_taken(name, db):
        CATEGORIES_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="create", status="conflict").inc()
        raise Conflict("Category already exists")
    if category.parent_category_id is not None:
        try:
            await _get_category_or_404(category.parent_category_id, db)
        except NotFound:
            raise NotFound("Parent category not found")

    new_cat = Category(name=name, parent_category_id=category.parent_category_id)
    db.add(new_cat)
    await db.commit()
    await db.refresh(new_cat)

    logger.info(
        "Category successfully created in DB: id={id}, name='{name}'",
        id=new_cat.id,
        name=new_cat.name,
    )
    CATEGORIES_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="create", status="success").inc()

    await invalidate_categories_cache(redis)
    return CategoryRead.model_validate(new_cat)


async def update_category_in_db(id: UUID, data: CategoryUpdate, db: AsyncSession, redis: Redis):
    logger.info("Attempt to rename category with id={id}", id=id)

    name = data.name.strip()
    if not name:
        raise InvalidRequest("Category name is required")

    cat = await _get_category_or_404(id, db)
    if await _name_taken(name, db, exclude_id=id):
        CATEGORIES_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="update", status="conflict").inc()
        raise Conflict("Category with this name already exists")

    cat.name = name
    await db.commit()
    await db.refresh(cat)

    logger.info("Category successfully renamed in DB: id={id}", id=id)
    CATEGORIES_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="update", status="success").inc()

    await invalidate_categories_cache(redis)
    return CategoryRead.model_validate(cat)


async def delete_category_from_db(id: UUID, db: AsyncSession, redis: Redis):
    logger.info("Attempt to delete category with id={id}", id=id)

    cat = await _get_category_or_404(id, db)

    has_children = (
        await db.execute(select(Category.id).where(Category.parent_category_id == id).limit(1))
    ).first()
    if has_children:
        CATEGORIES_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="delete", status="conflict").inc()
        raise Conflict("Cannot delete category with subcategories. Delete subcategories first.")

    has_products = (
        await db.execute(select(Product.id).where(Product.category_id == id).limit(1))
    ).first()
    if has_products:
        CATEGORIES_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="delete", status="conflict").inc()
        raise Conflict("Cannot delete category with associated products. Move or delete products first.")

    await db.delete(cat)
    await db.commit()

    logger.info("Category with id={id} successfully deleted from DB", id=id)
    CATEGORIES_OPERATIONS_TOTAL.labels(service=SERVICE_NAME, operation="delete", status="success").inc()

    await invalidate_categories_cache(redis)
    return {"detail": "Category deleted"}
