# framel/schemas/checkout_schemas.py
from datetime import date
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from framel.utils.phone import normalize_phone


class DeliveryDetails(BaseModel):
    recipient_name: str = Field(min_length=1, max_length=120)
    phone: str
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    county: str = Field(min_length=1)
    delivery_date: date
    instructions: Optional[str] = Field(default=None, max_length=500)

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: str) -> str:
        return normalize_phone(value)

    @field_validator("delivery_date")
    @classmethod
    def _not_in_past(cls, value: date) -> date:
        if value < date.today():
            raise ValueError("Delivery date cannot be in the past")
        return value


class CreateOrderRequest(BaseModel):
    delivery: DeliveryDetails
    # guests have no account email to fall back on
    contact_email: Optional[EmailStr] = None
