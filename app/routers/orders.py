from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_depends import get_db
from app.dependencies.depend import authentication_get_current_user, is_admin
from app.schemas.order import OrderCreate, OrderOut
from app.service.order_queries import (
    get_order_details as svc_get_order_details,
    get_orders_for_user as svc_get_orders_for_user,
)
from app.service.orders import place_order as svc_place_order

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post(
    "/",
    response_model=OrderOut,
    status_code=status.HTTP_201_CREATED,
)
async def place_order(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Dict[str, Any] = Depends(authentication_get_current_user),
):
    logger.info(
        "Place order request received for user_id='{user_id}'",
        user_id=str(current_user["id"]),
    )
    order = await svc_place_order(
        db,
        user_id=current_user["id"],
        items_in=[item.model_dump() for item in payload.items],
        delivery_address=payload.delivery_address,
        is_online_order=payload.is_online_order,
    )
    return order


@router.get("/", response_model=list[OrderOut])
async def get_my_orders(
    db: AsyncSession = Depends(get_db),
    current_user: Dict[str, Any] = Depends(authentication_get_current_user),
):
    logger.info(
        "List own orders request received for user_id='{user_id}'",
        user_id=str(current_user["id"]),
    )
    return await svc_get_orders_for_user(db, current_user["id"])


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Dict[str, Any] = Depends(authentication_get_current_user),
):
    logger.info(
        "Get order request received. order_id='{order_id}', user_id='{user_id}'",
        order_id=str(order_id),
        user_id=str(current_user["id"]),
    )
    return await svc_get_order_details(
        db,
        order_id,
        requester_id=current_user["id"],
        is_admin=is_admin(current_user),
    )
