import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.product import ProductRead


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    parent_category_id: uuid.UUID | None = None


class CategoryUpdate(BaseModel):
    name: str = Field(max_length=255)


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    parent_category_id: uuid.UUID | None
    created_at: datetime


class CategoryListItem(BaseModel):
    id: uuid.UUID
    name: str
    parent_category_id: uuid.UUID | None
    parent_category_name: str | None
    product_count: int
    level: Literal["main", "sub"]


class CategoryProducts(BaseModel):
    category: CategoryRead
    products: list[ProductRead]
