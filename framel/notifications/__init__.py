from .events import NotificationEvent
from .dispatcher import dispatch_order_event

__all__ = [
    "NotificationEvent",
    "dispatch_order_event",
]
