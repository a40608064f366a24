# framel/schemas/payment_schemas.py
"""
Typed shapes for the M-Pesa STK push boundary.

The provider posts loosely typed JSON; it is validated into these models
before any order logic sees it.
"""
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from framel.utils.phone import normalize_phone


class InitiatePaymentRequest(BaseModel):
    order_id: int
    phone: str
    amount: Decimal = Field(gt=0)

    @field_validator("phone")
    @classmethod
    def _normalize_phone(cls, value: str) -> str:
        return normalize_phone(value)


class StkMetadataItem(BaseModel):
    Name: str
    Value: Optional[Any] = None


class StkMetadata(BaseModel):
    Item: List[StkMetadataItem] = []


class StkCallback(BaseModel):
    MerchantRequestID: str
    CheckoutRequestID: str = Field(min_length=1)
    ResultCode: int
    ResultDesc: str = ""
    CallbackMetadata: Optional[StkMetadata] = None


class CallbackBody(BaseModel):
    stkCallback: StkCallback


class PaymentOutcome(BaseModel):
    """What one callback says about one payment attempt."""

    success: bool
    result_code: int
    result_desc: str = ""
    receipt_number: Optional[str] = None
    amount: Optional[Decimal] = None
    phone: Optional[str] = None
    transaction_date: Optional[str] = None


class MpesaCallback(BaseModel):
    Body: CallbackBody

    @property
    def stk(self) -> StkCallback:
        return self.Body.stkCallback

    def metadata_value(self, name: str):
        metadata = self.stk.CallbackMetadata
        if metadata is None:
            return None
        for item in metadata.Item:
            if item.Name == name:
                return item.Value
        return None

    def outcome(self) -> PaymentOutcome:
        success = self.stk.ResultCode == 0
        outcome = PaymentOutcome(
            success=success,
            result_code=self.stk.ResultCode,
            result_desc=self.stk.ResultDesc,
        )
        if not success:
            return outcome

        amount = self.metadata_value("Amount")
        receipt = self.metadata_value("MpesaReceiptNumber")
        phone = self.metadata_value("PhoneNumber")
        txn_date = self.metadata_value("TransactionDate")

        outcome.receipt_number = str(receipt) if receipt is not None else None
        outcome.amount = Decimal(str(amount)) if amount is not None else None
        outcome.phone = str(phone) if phone is not None else None
        outcome.transaction_date = str(txn_date) if txn_date is not None else None
        return outcome


class StkQueryResult(BaseModel):
    response_code: Optional[str] = None
    response_description: Optional[str] = None
    merchant_request_id: Optional[str] = None
    checkout_request_id: Optional[str] = None
    result_code: Optional[str] = None
    result_desc: Optional[str] = None


class StkPushResult(BaseModel):
    merchant_request_id: str
    checkout_request_id: str
    response_code: str
    response_description: str = ""
    customer_message: str = ""
