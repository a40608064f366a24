from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime

from framel.constants.order_status import OrderStatus, PaymentStatus
from framel.models.order_item import OrderItem


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_code: str = Field(index=True, unique=True)  # FRM-20251113-0001

    owner_key: str = Field(index=True)
    user_id: Optional[int] = Field(default=None, foreign_key="user.id")
    contact_email: Optional[str] = None

    subtotal: Decimal = Field(max_digits=12, decimal_places=2)
    delivery_fee: Decimal = Field(max_digits=12, decimal_places=2)
    total: Decimal = Field(max_digits=12, decimal_places=2)

    # delivery details
    recipient_name: str
    recipient_phone: str
    delivery_street: str
    delivery_city: str
    delivery_county: str
    delivery_date: date
    delivery_instructions: Optional[str] = None

    order_status: str = Field(default=OrderStatus.processing.value, index=True)
    payment_status: str = Field(default=PaymentStatus.pending.value, index=True)
    payment_method: str = Field(default="mpesa")

    # M-Pesa correlation of the latest attempt; every attempt lives in payment_attempt
    merchant_request_id: Optional[str] = Field(default=None)
    checkout_request_id: Optional[str] = Field(default=None, index=True, unique=True)
    payment_phone: Optional[str] = None
    mpesa_receipt_number: Optional[str] = Field(default=None, index=True)
    paid_amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    paid_at: Optional[datetime] = None
    # when the latest STK push went out
    payment_initiated_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    cancelled_at: Optional[datetime] = None

    items: List["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"order_by": "OrderItem.id"},
    )
