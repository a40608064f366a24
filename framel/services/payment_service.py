# framel/services/payment_service.py
"""
M-Pesa payment flow around an existing order.

`initiate_payment` starts an STK push and stores the correlation ids.
`handle_callback` applies the provider's asynchronous result. Callbacks
arrive at least once and in any order, so only the call that wins the
conditional update in `mark_payment_outcome` has side effects.
"""
import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlmodel import Session

from framel.config import settings
from framel.constants.order_status import OrderStatus, PaymentStatus
from framel.errors import AlreadyPaid, AmountMismatch, InvalidState, NotFound
from framel.notifications import NotificationEvent, dispatch_order_event
from framel.schemas.payment_schemas import MpesaCallback, StkQueryResult
from framel.services.mpesa_client import MpesaClient
from framel.services.order_service import (
    get_order,
    get_order_by_checkout_request_id,
    get_pending_attempt,
    mark_payment_outcome,
    record_payment_attempt,
)

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = Decimal("0.01")


def payable_amount(total: Decimal) -> int:
    """M-Pesa only takes whole shillings."""
    return int(Decimal(total).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def initiate_payment(
    session: Session,
    client: MpesaClient,
    order_id: int,
    phone: str,
    amount: Decimal,
    owner_key: Optional[str] = None,
) -> dict:
    order = get_order(session, order_id, owner_key)

    if order.payment_status == PaymentStatus.completed:
        raise AlreadyPaid()

    if order.order_status == OrderStatus.cancelled:
        raise InvalidState("Cannot pay for a cancelled order")

    if abs(Decimal(amount) - order.total) > AMOUNT_TOLERANCE:
        raise AmountMismatch(
            details={"expected": order.total, "received": Decimal(amount)}
        )

    # the customer may still complete the prompt already on their phone
    pending = get_pending_attempt(session, order)
    if pending is not None:
        age = (datetime.utcnow() - pending.created_at).total_seconds()
        if age < settings.MPESA_PROMPT_TIMEOUT_SECONDS:
            raise InvalidState(
                "A payment prompt is already waiting on your phone",
                details={
                    "checkout_request_id": pending.checkout_request_id,
                    "retry_after": int(settings.MPESA_PROMPT_TIMEOUT_SECONDS - age) + 1,
                },
            )

    push = client.stk_push(
        phone=phone,
        amount=payable_amount(order.total),
        account_reference=order.order_code,
        description=f"Order {order.order_code}",
    )

    record_payment_attempt(
        session,
        order,
        merchant_request_id=push.merchant_request_id,
        checkout_request_id=push.checkout_request_id,
        phone=phone,
        amount=Decimal(payable_amount(order.total)),
    )

    logger.info(
        f"STK push sent for {order.order_code}: {push.checkout_request_id}"
    )

    return {
        "order_id": order.id,
        "order_code": order.order_code,
        "merchant_request_id": push.merchant_request_id,
        "checkout_request_id": push.checkout_request_id,
        "customer_message": push.customer_message,
        "payment_status": order.payment_status,
    }


def query_payment_status(
    session: Session,
    client: MpesaClient,
    checkout_request_id: str,
    owner_key: Optional[str] = None,
) -> StkQueryResult:
    """Ask the provider directly. Read only; callbacks stay the source of truth."""
    order = get_order_by_checkout_request_id(session, checkout_request_id, owner_key)
    if order is None:
        raise NotFound("Payment not found")

    return client.stk_query(checkout_request_id)


def handle_callback(session: Session, payload: Any) -> bool:
    """
    Reconcile one STK callback with its order.

    Returns True when this call changed the payment state. Never raises.
    """
    try:
        callback = MpesaCallback.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Discarding malformed M-Pesa callback: {e.errors()}")
        return False

    checkout_request_id = callback.stk.CheckoutRequestID

    try:
        order = get_order_by_checkout_request_id(session, checkout_request_id)
        if order is None:
            logger.warning(f"No order for CheckoutRequestID {checkout_request_id}, discarding")
            return False

        if order.order_status == OrderStatus.cancelled:
            logger.warning(
                f"Orphaned callback for cancelled order {order.order_code} "
                f"({checkout_request_id}), discarding"
            )
            return False

        outcome = callback.outcome()

        if outcome.success:
            expected = payable_amount(order.total)
            if outcome.amount is None or outcome.amount != expected:
                logger.error(
                    f"Amount mismatch for {order.order_code}: "
                    f"paid {outcome.amount}, expected {expected} "
                    f"(receipt {outcome.receipt_number})"
                )
                outcome = outcome.model_copy(update={
                    "success": False,
                    "result_desc": f"Amount mismatch: paid {outcome.amount}, expected {expected}",
                })

        won = mark_payment_outcome(session, order, checkout_request_id, outcome)
        if not won:
            logger.info(
                f"Callback {checkout_request_id} for {order.order_code} already applied or stale"
            )
            return False

        if outcome.success:
            logger.info(
                f"Payment completed for {order.order_code}, receipt {outcome.receipt_number}"
            )
            dispatch_order_event(event=NotificationEvent.PAYMENT_SUCCESS, order=order)
        else:
            logger.info(
                f"Payment failed for {order.order_code}: "
                f"[{outcome.result_code}] {outcome.result_desc}"
            )
            dispatch_order_event(
                event=NotificationEvent.PAYMENT_FAILED,
                order=order,
                extra={"reason": outcome.result_desc},
            )
        return True

    except Exception:
        logger.exception(f"Error processing M-Pesa callback {checkout_request_id}")
        session.rollback()
        return False


def process_callback(engine: Engine, payload: Any) -> bool:
    """Background entry point with its own session."""
    with Session(engine) as session:
        return handle_callback(session, payload)
