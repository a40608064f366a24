# -------- ADMIN ORDERS --------
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from framel.constants.order_status import OrderStatus, PaymentStatus
from framel.database import get_session
from framel.dependencies.admin import require_admin
from framel.models.user import User
from framel.schemas.orders_schemas import OrderStatusUpdate, serialize_event, serialize_order
from framel.services import order_service
from framel.services.order_event_service import get_order_events

router = APIRouter()


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    status: Optional[OrderStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = None,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    return order_service.list_orders(
        session,
        page=page,
        limit=limit,
        order_status=status.value if status else None,
        payment_status=payment_status.value if payment_status else None,
        search=search,
        serialize=lambda order: serialize_order(order, include_items=False),
    )


@router.get("/{order_id}")
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    order = order_service.get_order(session, order_id)
    data = serialize_order(order)
    data["owner_key"] = order.owner_key
    data["checkout_request_id"] = order.checkout_request_id
    data["payment_phone"] = order.payment_phone
    data["paid_amount"] = order.paid_amount
    data["events"] = [serialize_event(e) for e in get_order_events(session, order.id)]
    return data


@router.patch("/{order_id}/status")
def update_status(
    order_id: int,
    data: OrderStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    order = order_service.update_order_status(
        session, order_id, data.status, changed_by=f"admin:{admin.id}"
    )
    return {
        "message": f"Order marked {order.order_status}",
        "order": serialize_order(order),
    }


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    order = order_service.cancel_order(
        session, order_id, cancelled_by=f"admin:{admin.id}"
    )
    return {"message": "Order cancelled", "order": serialize_order(order)}
