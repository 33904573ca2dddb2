from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict


class OrderItemIn(BaseModel):
    product_id: UUID
    quantity: int = Field(gt=0)


class OrderCreate(BaseModel):
    items: List[OrderItemIn]
    delivery_address: str = Field(max_length=500)
    is_online_order: bool = True


class OrderStatusPatch(BaseModel):
    # validated by the state machine so unknown values surface as InvalidStatus
    status: str


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    order_date: datetime
    total_amount: Decimal
    status: str
    delivery_address: Optional[str]
    is_online_order: bool
    items: List[OrderItemOut]
