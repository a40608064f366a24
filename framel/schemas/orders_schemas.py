from pydantic import BaseModel

from framel.constants.order_status import OrderStatus
from framel.models.order import Order


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


def serialize_order(order: Order, include_items: bool = True) -> dict:
    data = {
        "id": order.id,
        "order_code": order.order_code,
        "order_status": order.order_status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "subtotal": order.subtotal,
        "delivery_fee": order.delivery_fee,
        "total": order.total,
        "contact_email": order.contact_email,
        "delivery": {
            "recipient_name": order.recipient_name,
            "phone": order.recipient_phone,
            "street": order.delivery_street,
            "city": order.delivery_city,
            "county": order.delivery_county,
            "delivery_date": order.delivery_date,
            "instructions": order.delivery_instructions,
        },
        "mpesa_receipt_number": order.mpesa_receipt_number,
        "paid_at": order.paid_at,
        "created_at": order.created_at,
        "cancelled_at": order.cancelled_at,
    }

    if include_items:
        data["items"] = [
            {
                "product_id": item.product_id,
                "name": item.name,
                "unit_price": item.unit_price,
                "quantity": item.quantity,
                "line_total": item.line_total,
                "image_url": item.image_url,
            }
            for item in order.items
        ]
    else:
        data["item_count"] = sum(item.quantity for item in order.items)

    return data


def serialize_event(event) -> dict:
    return {
        "event_type": event.event_type,
        "label": event.label,
        "meta": event.meta,
        "created_by": event.created_by,
        "created_at": event.created_at,
    }
