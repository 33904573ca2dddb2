from uuid import UUID

from fastapi import APIRouter, Depends, status
from loguru import logger
from redis.asyncio.client import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis import get_redis
from app.crud.categories import (
    get_all_categories_from_db,
    get_products_by_category_name,
    create_category_in_db,
    update_category_in_db,
    delete_category_from_db,
)
from app.db_depends import get_db
from app.dependencies.depend import admin_required
from app.schemas.category import (
    CategoryCreate,
    CategoryListItem,
    CategoryProducts,
    CategoryRead,
    CategoryUpdate,
)

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("/", response_model=list[CategoryListItem])
async def get_all_categories(
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    logger.info("Request to GET all categories")
    return await get_all_categories_from_db(db, redis)


@router.get("/{name}/products", response_model=CategoryProducts)
async def get_category_products(name: str, db: AsyncSession = Depends(get_db)):
    logger.info("Request to GET products of category '{name}'", name=name)
    return await get_products_by_category_name(name, db)


@router.post(
    "/",
    dependencies=[Depends(admin_required)],
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    category: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    logger.info("Request to CREATE category with name='{name}'", name=category.name)
    return await create_category_in_db(category, db, redis)


@router.put(
    "/{id}",
    dependencies=[Depends(admin_required)],
    response_model=CategoryRead,
)
async def update_category(
    id: UUID,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    logger.info("Request to UPDATE category with id={id}", id=id)
    return await update_category_in_db(id, data, db, redis)


@router.delete(
    "/{id}",
    dependencies=[Depends(admin_required)],
)
async def delete_category(
    id: UUID,
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    logger.info("Request to DELETE category with id={id}", id=id)
    return await delete_category_from_db(id, db, redis)
