import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ProductBase(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    stock_quantity: int = Field(ge=0)
    unit: str | None = Field(default=None, max_length=50)
    barcode: str | None = Field(default=None, max_length=100)
    image_url: str | None = Field(default=None, max_length=500)
    category_id: uuid.UUID | None = None


class ProductCreate(ProductBase):
    pass


class ProductPatch(BaseModel):
    """Partial update; only the fields present in the request are applied."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    price: Decimal | None = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    stock_quantity: int | None = Field(default=None, ge=0)
    unit: str | None = Field(default=None, max_length=50)
    barcode: str | None = Field(default=None, max_length=100)
    image_url: str | None = Field(default=None, max_length=500)
    category_id: uuid.UUID | None = None

    model_config = ConfigDict(extra="forbid")


class ProductRead(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    is_active: bool
    created_at: datetime
