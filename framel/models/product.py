from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint, Column, JSON
from typing import List, Optional
from decimal import Decimal
from datetime import datetime


class Product(SQLModel, table=True):
    """Catalog record. The order core only reads it and moves `stock`."""

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    slug: Optional[str] = Field(default=None, index=True)
    description: Optional[str] = None

    price: Decimal = Field(max_digits=12, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    image_urls: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    @property
    def primary_image(self) -> str:
        return self.image_urls[0] if self.image_urls else ""
