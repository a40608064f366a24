from enum import Enum


class OrderStatus(str, Enum):
    processing = "processing"
    confirmed = "confirmed"
    dispatched = "dispatched"
    delivered = "delivered"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


# Admin driven forward moves, one step at a time.
# Cancellation has its own path because it restores stock.
ALLOWED_TRANSITIONS = {
    OrderStatus.processing: [OrderStatus.confirmed],
    OrderStatus.confirmed: [OrderStatus.dispatched],
    OrderStatus.dispatched: [OrderStatus.delivered],
    OrderStatus.delivered: [],
    OrderStatus.cancelled: [],
}

CANCELLABLE_STATUSES = [OrderStatus.processing, OrderStatus.confirmed]

TERMINAL_STATUSES = [OrderStatus.delivered, OrderStatus.cancelled]


def can_transition(current: str, new: str) -> bool:
    return OrderStatus(new) in ALLOWED_TRANSITIONS.get(OrderStatus(current), [])
