from uuid import UUID

from fastapi import APIRouter, Depends, status
from loguru import logger
from redis.asyncio.client import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis import get_redis
from app.crud.products import (
    get_all_products_from_db,
    get_product_from_db,
    create_product_in_db,
    update_product_in_db,
    delete_product_from_db,
)
from app.db_depends import get_db
from app.dependencies.depend import admin_required
from app.schemas.product import ProductCreate, ProductPatch, ProductRead

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("/", response_model=list[ProductRead])
async def get_all_products(db: AsyncSession = Depends(get_db)):
    logger.info("Request to GET all products")
    return await get_all_products_from_db(db)


@router.get("/{id}", response_model=ProductRead)
async def get_product(id: UUID, db: AsyncSession = Depends(get_db)):
    logger.info("Request to GET product with id={id}", id=id)
    return await get_product_from_db(id, db)


@router.post(
    "/",
    dependencies=[Depends(admin_required)],
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    data: ProductCreate,
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    logger.info("Request to CREATE product with name='{name}'", name=data.name)
    return await create_product_in_db(data, db, redis)


@router.patch(
    "/{id}",
    dependencies=[Depends(admin_required)],
    response_model=ProductRead,
)
async def update_product(
    id: UUID,
    data: ProductPatch,
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    logger.info("Request to UPDATE product with id={id}", id=id)
    return await update_product_in_db(id, data, db, redis)


@router.delete(
    "/{id}",
    dependencies=[Depends(admin_required)],
)
async def delete_product(
    id: UUID,
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    logger.info("Request to DELETE product with id={id}", id=id)
    return await delete_product_from_db(id, db, redis)
