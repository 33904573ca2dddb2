from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.db_depends import get_db
from app.dependencies.depend import admin_required
from app.schemas.order import OrderOut, OrderStatusPatch
from app.service.order_queries import get_all_orders as svc_get_all_orders
from app.service.order_status import update_order_status as svc_update_order_status

router = APIRouter(prefix="/admin/orders", tags=["Admin orders"])


@router.get("/", response_model=list[OrderOut])
async def get_all_orders(
    db: AsyncSession = Depends(get_db),
    admin: Dict[str, Any] = Depends(admin_required),
):
    logger.info(
        "List all orders request received from admin_id='{admin_id}'",
        admin_id=str(admin["id"]),
    )
    return await svc_get_all_orders(db)


@router.patch("/{order_id}/status", response_model=OrderOut)
async def patch_order_status(
    order_id: UUID,
    payload: OrderStatusPatch,
    db: AsyncSession = Depends(get_db),
    admin: Dict[str, Any] = Depends(admin_required),
):
    logger.info(
        "Patch order status request received. order_id='{order_id}', new_status='{status}', admin_id='{admin_id}'",
        order_id=str(order_id),
        status=payload.status,
        admin_id=str(admin["id"]),
    )
    return await svc_update_order_status(db, order_id, payload.status)
