from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from framel.constants.order_status import OrderStatus
from framel.database import get_session
from framel.dependencies.identity import Identity, get_identity
from framel.schemas.checkout_schemas import CreateOrderRequest
from framel.schemas.orders_schemas import serialize_event, serialize_order
from framel.services import order_service

router = APIRouter()


def _summary(order):
    return serialize_order(order, include_items=False)


@router.post("", status_code=201)
def place_order(
    data: CreateOrderRequest,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    order = order_service.create_order(
        session,
        identity.key,
        data.delivery,
        user_id=identity.user_id,
        contact_email=data.contact_email or identity.email,
    )

    return {
        "message": "Order placed, complete payment with M-Pesa",
        "order": serialize_order(order),
    }


# My Orders

@router.get("")
def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    return order_service.list_orders_for_owner(
        session,
        identity.key,
        page=page,
        limit=limit,
        status=status.value if status else None,
        serialize=_summary,
    )


@router.get("/code/{order_code}")
def get_order_by_code(
    order_code: str,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    order = order_service.get_order_by_code(session, order_code, identity.key)
    return serialize_order(order)


@router.get("/{order_id}")
def get_order(
    order_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    order = order_service.get_order(session, order_id, identity.key)
    return serialize_order(order)


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    order = order_service.cancel_order(
        session, order_id, owner_key=identity.key, cancelled_by=identity.key
    )
    return {"message": "Order cancelled", "order": serialize_order(order)}


@router.get("/{order_id}/timeline")
def order_timeline(
    order_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    events = order_service.get_order_timeline(session, order_id, identity.key)
    return {"order_id": order_id, "events": [serialize_event(e) for e in events]}
