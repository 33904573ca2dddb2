import uuid
from typing import Optional

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, uuidpk, created_ts


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuidpk]
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    parent_category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("categories.id"), nullable=True
    )
    created_at: Mapped[created_ts]

    parent: Mapped[Optional["Category"]] = relationship(remote_side="Category.id")
    products: Mapped[list["Product"]] = relationship(back_populates="category")
