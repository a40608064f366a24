# framel/services/order_service.py
"""
Order engine: cart -> order, inventory effects, order codes and the
order/payment state machine.

Stock and status changes go through conditional UPDATE statements so
concurrent requests resolve to a single winner. Every mutation writes an
order_event row inside the same transaction.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from framel.config import settings
from framel.constants.order_status import (
    ALLOWED_TRANSITIONS,
    CANCELLABLE_STATUSES,
    OrderStatus,
    PaymentStatus,
    can_transition,
)
from framel.errors import (
    AlreadyPaid,
    CartInvalid,
    EmptyCart,
    InvalidState,
    InvalidTransition,
    NotFound,
    StockConflict,
)
from framel.models.cart import Cart
from framel.models.order import Order
from framel.models.order_item import OrderItem
from framel.models.order_sequence import OrderSequence
from framel.models.payment_attempt import PaymentAttempt
from framel.notifications import NotificationEvent, dispatch_order_event
from framel.schemas.checkout_schemas import DeliveryDetails
from framel.schemas.payment_schemas import PaymentOutcome
from framel.services.cart_service import clear_cart, compute_totals, get_cart
from framel.services.catalog_service import (
    get_product,
    increment_stock,
    try_decrement_stock,
)
from framel.services.order_event_service import get_order_events, log_order_event
from framel.utils.pagination import paginate

logger = logging.getLogger(__name__)


class _Line(NamedTuple):
    product_id: int
    name: str
    price: Decimal
    quantity: int
    image_url: str


def store_now() -> datetime:
    return datetime.now(ZoneInfo(settings.STORE_TIMEZONE))


# -------------------------
# ORDER CODES
# -------------------------

def allocate_order_code(session: Session, now: Optional[datetime] = None) -> str:
    """
    Next PREFIX-YYYYMMDD-NNNN code for the store's calendar day.

    Backed by one counter row per day bumped with an atomic UPDATE, so two
    checkouts never read the same value. Joins the caller's transaction.
    """
    now = now or store_now()
    day = now.strftime("%Y%m%d")

    bump = (
        update(OrderSequence)
        .where(OrderSequence.day == day)
        .values(last_value=OrderSequence.last_value + 1)
        .execution_options(synchronize_session=False)
    )

    result = session.exec(bump)
    if result.rowcount == 0:
        # first order of the day
        try:
            with session.begin_nested():
                session.add(OrderSequence(day=day, last_value=1))
        except IntegrityError:
            # another checkout created today's row first
            session.exec(bump)

    value = session.exec(
        select(OrderSequence.last_value).where(OrderSequence.day == day)
    ).one()

    return f"{settings.ORDER_CODE_PREFIX}-{day}-{value:04d}"


# -------------------------
# LOOKUPS
# -------------------------

def get_order(session: Session, order_id: int, owner_key: Optional[str] = None) -> Order:
    """Order by internal id. With owner_key, someone else's order is NotFound."""
    order = session.get(Order, order_id)

    if not order or (owner_key and order.owner_key != owner_key):
        raise NotFound("Order not found")

    return order


def get_order_by_code(session: Session, order_code: str, owner_key: Optional[str] = None) -> Order:
    order = session.exec(
        select(Order).where(Order.order_code == order_code)
    ).first()

    if not order or (owner_key and order.owner_key != owner_key):
        raise NotFound("Order not found")

    return order


def get_order_by_checkout_request_id(
    session: Session,
    checkout_request_id: str,
    owner_key: Optional[str] = None,
) -> Optional[Order]:
    """Order behind any of its payment attempts, not just the latest one."""
    query = (
        select(Order)
        .join(PaymentAttempt, PaymentAttempt.order_id == Order.id)
        .where(PaymentAttempt.checkout_request_id == checkout_request_id)
    )

    if owner_key:
        query = query.where(Order.owner_key == owner_key)

    return session.exec(query).first()


def list_orders_for_owner(
    session: Session,
    owner_key: str,
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    serialize=None,
) -> dict:
    query = select(Order).where(Order.owner_key == owner_key)

    if status:
        query = query.where(Order.order_status == status)

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(session=session, query=query, page=page, limit=limit, serialize=serialize)


def list_orders(
    session: Session,
    page: int = 1,
    limit: int = 50,
    order_status: Optional[str] = None,
    payment_status: Optional[str] = None,
    search: Optional[str] = None,
    serialize=None,
) -> dict:
    query = select(Order)

    if order_status:
        query = query.where(Order.order_status == order_status)

    if payment_status:
        query = query.where(Order.payment_status == payment_status)

    if search:
        like = f"%{search}%"
        query = query.where(
            Order.order_code.ilike(like) |
            Order.recipient_name.ilike(like) |
            Order.recipient_phone.ilike(like)
        )

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(session=session, query=query, page=page, limit=limit, serialize=serialize)


def get_order_timeline(session: Session, order_id: int, owner_key: Optional[str] = None):
    order = get_order(session, order_id, owner_key)
    return get_order_events(session, order.id)


# -------------------------
# CREATE
# -------------------------

def _snapshot_lines(session: Session, cart: Cart) -> Tuple[List[_Line], List[dict]]:
    """Current catalog name/price/image per cart line, plus lines that no longer fit."""
    lines = []
    problems = []

    for item in cart.items:
        product = get_product(session, item.product_id)

        if product is None:
            problems.append({
                "product_id": item.product_id,
                "issue": "unavailable",
                "requested": item.quantity,
                "available": 0,
            })
            continue

        if product.stock < item.quantity:
            problems.append({
                "product_id": item.product_id,
                "name": product.name,
                "issue": "insufficient_stock",
                "requested": item.quantity,
                "available": product.stock,
            })
            continue

        lines.append(
            _Line(
                product_id=product.id,
                name=product.name,
                price=product.price,
                quantity=item.quantity,
                image_url=product.primary_image,
            )
        )

    return lines, problems


def create_order(
    session: Session,
    owner_key: str,
    details: DeliveryDetails,
    user_id: Optional[int] = None,
    contact_email: Optional[str] = None,
) -> Order:
    """
    Turn the owner's cart into a processing/pending order.

    Order code, stock decrements, cart clearing and the order row commit
    together or not at all. Payment is started separately.
    """
    cart = get_cart(session, owner_key)
    if cart is None or not cart.items:
        raise EmptyCart()

    # time may have passed since the items were added
    lines, problems = _snapshot_lines(session, cart)
    if problems:
        raise CartInvalid(details=problems)

    totals = compute_totals(lines)

    try:
        order_code = allocate_order_code(session)

        for line in lines:
            if not try_decrement_stock(session, line.product_id, line.quantity):
                raise StockConflict(
                    details=[{"product_id": line.product_id, "name": line.name}]
                )

        order = Order(
            order_code=order_code,
            owner_key=owner_key,
            user_id=user_id,
            contact_email=contact_email,
            subtotal=totals["subtotal"],
            delivery_fee=totals["delivery_fee"],
            total=totals["total"],
            recipient_name=details.recipient_name,
            recipient_phone=details.phone,
            delivery_street=details.street,
            delivery_city=details.city,
            delivery_county=details.county,
            delivery_date=details.delivery_date,
            delivery_instructions=details.instructions,
            order_status=OrderStatus.processing.value,
            payment_status=PaymentStatus.pending.value,
            items=[
                OrderItem(
                    product_id=line.product_id,
                    name=line.name,
                    unit_price=line.price,
                    quantity=line.quantity,
                    image_url=line.image_url,
                )
                for line in lines
            ],
        )
        session.add(order)

        clear_cart(session, owner_key, commit=False)
        session.flush()

        log_order_event(
            session,
            order.id,
            "order_placed",
            f"Order {order_code} placed",
            created_by=owner_key,
            meta={"total": str(order.total), "items": len(lines)},
        )
        session.commit()

    except Exception as e:
        logger.error(f"Order creation failed for {owner_key}: {e}")
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.order_code} created for {owner_key}, total {order.total}")

    dispatch_order_event(event=NotificationEvent.ORDER_PLACED, order=order)
    return order


# -------------------------
# CANCEL / STATUS
# -------------------------

def cancel_order(
    session: Session,
    order_id: int,
    owner_key: Optional[str] = None,
    cancelled_by: str = "customer",
    idle_before: Optional[datetime] = None,
) -> Order:
    """
    Cancel a processing/confirmed, unpaid order and put its stock back.

    Only the request that wins the status update restores stock, so
    cancelling twice never restores twice. With idle_before, the order is
    only cancelled if no payment prompt went out after that time.
    """
    order = get_order(session, order_id, owner_key)

    if order.order_status not in CANCELLABLE_STATUSES:
        raise InvalidState(f"Cannot cancel order with status: {order.order_status}")

    if order.payment_status == PaymentStatus.completed:
        raise AlreadyPaid("Cannot cancel paid order. Please contact support.")

    now = datetime.utcnow()
    try:
        query = (
            update(Order)
            .where(Order.id == order.id)
            .where(Order.order_status.in_([s.value for s in CANCELLABLE_STATUSES]))
            .where(Order.payment_status != PaymentStatus.completed.value)
        )
        if idle_before is not None:
            query = query.where(
                func.coalesce(Order.payment_initiated_at, Order.created_at) < idle_before
            )

        result = session.exec(
            query.values(
                order_status=OrderStatus.cancelled.value,
                cancelled_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState("Order was changed by another request, please reload")

        for item in order.items:
            increment_stock(session, item.product_id, item.quantity)

        log_order_event(
            session,
            order.id,
            "order_cancelled",
            f"Order {order.order_code} cancelled",
            created_by=cancelled_by,
            meta={"restored": {str(i.product_id): i.quantity for i in order.items}},
        )
        session.commit()

    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.order_code} cancelled by {cancelled_by}, stock restored")

    dispatch_order_event(event=NotificationEvent.ORDER_CANCELLED, order=order)
    return order


_STATUS_NOTIFICATIONS = {
    OrderStatus.dispatched: NotificationEvent.ORDER_DISPATCHED,
    OrderStatus.delivered: NotificationEvent.ORDER_DELIVERED,
}


def update_order_status(
    session: Session,
    order_id: int,
    new_status: str,
    changed_by: str = "admin",
) -> Order:
    order = get_order(session, order_id)
    new_status = OrderStatus(new_status)

    if not can_transition(order.order_status, new_status):
        allowed = [s.value for s in ALLOWED_TRANSITIONS[OrderStatus(order.order_status)]]
        raise InvalidTransition(
            f"Cannot move order from {order.order_status} to {new_status.value}",
            details={"from": order.order_status, "to": new_status.value, "allowed": allowed},
        )

    previous = order.order_status
    order.order_status = new_status.value
    order.updated_at = datetime.utcnow()
    session.add(order)

    log_order_event(
        session,
        order.id,
        f"order_{new_status.value}",
        f"Order {order.order_code} {new_status.value}",
        created_by=changed_by,
        meta={"from": previous},
    )
    session.commit()
    session.refresh(order)

    event = _STATUS_NOTIFICATIONS.get(new_status)
    if event:
        dispatch_order_event(event=event, order=order)

    return order


# -------------------------
# PAYMENT STATE
# -------------------------

def get_pending_attempt(session: Session, order: Order) -> Optional[PaymentAttempt]:
    """The order's current prompt when it is still waiting for a callback."""
    if not order.checkout_request_id or order.payment_status != PaymentStatus.pending:
        return None

    return session.exec(
        select(PaymentAttempt)
        .where(PaymentAttempt.checkout_request_id == order.checkout_request_id)
        .where(PaymentAttempt.status == PaymentStatus.pending.value)
    ).first()


def record_payment_attempt(
    session: Session,
    order: Order,
    merchant_request_id: str,
    checkout_request_id: str,
    phone: str,
    amount: Optional[Decimal] = None,
) -> Order:
    """
    Store a fresh STK push as the order's current attempt.

    Earlier attempts keep their rows, so their callbacks still find the order.
    """
    now = datetime.utcnow()
    previous = order.checkout_request_id

    result = session.exec(
        update(Order)
        .where(Order.id == order.id)
        .where(Order.payment_status != PaymentStatus.completed.value)
        .values(
            merchant_request_id=merchant_request_id,
            checkout_request_id=checkout_request_id,
            payment_phone=phone,
            payment_status=PaymentStatus.pending.value,
            payment_initiated_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        raise AlreadyPaid()

    session.add(
        PaymentAttempt(
            order_id=order.id,
            merchant_request_id=merchant_request_id,
            checkout_request_id=checkout_request_id,
            phone=phone,
            amount=order.total if amount is None else amount,
            created_at=now,
            updated_at=now,
        )
    )

    log_order_event(
        session,
        order.id,
        "payment_initiated",
        "M-Pesa payment prompt sent",
        created_by="system",
        meta={
            "checkout_request_id": checkout_request_id,
            "replaces": previous,
            "phone": phone,
        },
    )
    session.commit()
    session.refresh(order)
    return order


def mark_payment_outcome(
    session: Session,
    order: Order,
    checkout_request_id: str,
    outcome: PaymentOutcome,
) -> bool:
    """
    Apply a provider result to the attempt identified by checkout_request_id.

    Returns True only for the call that changed the order's payment state.
    Replays find the attempt already settled and change nothing. A success
    from any attempt completes the order; a failure only counts for the
    current attempt, since a newer prompt may still be paid.
    """
    now = datetime.utcnow()

    settled = session.exec(
        update(PaymentAttempt)
        .where(PaymentAttempt.order_id == order.id)
        .where(PaymentAttempt.checkout_request_id == checkout_request_id)
        .where(PaymentAttempt.status == PaymentStatus.pending.value)
        .values(
            status=(PaymentStatus.completed if outcome.success else PaymentStatus.failed).value,
            result_code=outcome.result_code,
            result_desc=outcome.result_desc,
            mpesa_receipt_number=outcome.receipt_number,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if settled.rowcount != 1:
        session.rollback()
        return False

    query = (
        update(Order)
        .where(Order.id == order.id)
        .where(Order.order_status != OrderStatus.cancelled.value)
    )
    if outcome.success:
        query = query.where(Order.payment_status != PaymentStatus.completed.value).values(
            payment_status=PaymentStatus.completed.value,
            checkout_request_id=checkout_request_id,
            mpesa_receipt_number=outcome.receipt_number,
            paid_amount=outcome.amount,
            paid_at=now,
            updated_at=now,
        )
    else:
        query = (
            query
            .where(Order.checkout_request_id == checkout_request_id)
            .where(Order.payment_status == PaymentStatus.pending.value)
            .values(payment_status=PaymentStatus.failed.value, updated_at=now)
        )

    result = session.exec(query.execution_options(synchronize_session=False))

    if result.rowcount != 1:
        if outcome.success:
            # money was taken for an order that no longer accepts it
            logger.error(
                f"Payment {outcome.receipt_number} on {checkout_request_id} not applied to "
                f"order {order.order_code}, needs a manual refund"
            )
            log_order_event(
                session,
                order.id,
                "payment_unapplied",
                "Extra payment received, refund required",
                created_by="mpesa",
                meta=outcome.model_dump(mode="json"),
            )
        session.commit()
        session.refresh(order)
        return False

    if outcome.success:
        # payment implies confirmation
        session.exec(
            update(Order)
            .where(Order.id == order.id)
            .where(Order.order_status == OrderStatus.processing.value)
            .values(order_status=OrderStatus.confirmed.value)
            .execution_options(synchronize_session=False)
        )

    log_order_event(
        session,
        order.id,
        "payment_completed" if outcome.success else "payment_failed",
        "Payment received" if outcome.success else f"Payment failed: {outcome.result_desc}",
        created_by="mpesa",
        meta=outcome.model_dump(mode="json"),
    )
    session.commit()
    session.refresh(order)
    return True
