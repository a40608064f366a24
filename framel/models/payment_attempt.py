from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from framel.constants.order_status import PaymentStatus


class PaymentAttempt(SQLModel, table=True):
    """
    One STK push sent for an order.

    Every prompt keeps its own row so a callback for an older prompt can
    still be matched to its order after the customer retried.
    """

    __tablename__ = "payment_attempt"
    __table_args__ = (Index("ix_payment_attempt_order_created", "order_id", "created_at"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id")

    merchant_request_id: str
    checkout_request_id: str = Field(index=True, unique=True)
    phone: str
    amount: Decimal = Field(max_digits=12, decimal_places=2)

    # pending until its callback arrives, then completed or failed
    status: str = Field(default=PaymentStatus.pending.value, index=True)
    result_code: Optional[int] = None
    result_desc: Optional[str] = None
    mpesa_receipt_number: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
