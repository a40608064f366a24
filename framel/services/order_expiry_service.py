import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from framel.config import settings
from framel.constants.order_status import OrderStatus, PaymentStatus
from framel.errors import ShopError
from framel.models.order import Order
from framel.services.order_service import cancel_order

logger = logging.getLogger(__name__)


def expire_unpaid_orders(
    session: Session,
    hours: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Cancel processing orders whose payment never completed.

    Age counts from the latest payment prompt when there is one, so an
    order is never expired while its customer is still paying.

    Goes through cancel_order so stock comes back exactly once. Returns the
    codes of the orders that were cancelled. hours=0 disables the sweep.
    """
    hours = settings.ORDER_EXPIRY_HOURS if hours is None else hours
    if hours <= 0:
        return []

    cutoff = (now or datetime.utcnow()) - timedelta(hours=hours)

    order_ids = session.exec(
        select(Order.id)
        .where(Order.order_status == OrderStatus.processing.value)
        .where(Order.payment_status.in_([
            PaymentStatus.pending.value,
            PaymentStatus.failed.value,
        ]))
        # a recent STK push may still be paid
        .where(func.coalesce(Order.payment_initiated_at, Order.created_at) < cutoff)
    ).all()

    expired = []
    for order_id in order_ids:
        try:
            order = cancel_order(
                session, order_id, cancelled_by="system:expiry", idle_before=cutoff
            )
        except ShopError as e:
            # paid, cancelled or retried while the sweep was running
            logger.info(f"Skipping expiry of order {order_id}: {e.message}")
            continue
        expired.append(order.order_code)

    logger.info(f"Expired {len(expired)} unpaid orders older than {hours}h")
    return expired
