from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel


class OrderEvent(SQLModel, table=True):
    """One line of an order's timeline. Rows are only ever inserted."""

    __tablename__ = "order_event"
    __table_args__ = (Index("ix_order_event_order_created", "order_id", "created_at"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id")

    # order_placed, payment_initiated, payment_completed, order_cancelled, ...
    event_type: str = Field(index=True)
    label: str
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # "system", "mpesa", the owner key or "admin:<id>"
    created_by: str = Field(default="system")
    created_at: datetime = Field(default_factory=datetime.utcnow)
